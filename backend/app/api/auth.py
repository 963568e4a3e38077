"""Authentication API endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.database import get_db
from app.models import User
from app.schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from app.utils.db import get_by_any_field, get_by_field
from app.utils.exceptions import authentication_error, handle_database_error, validation_error
from app.utils.hashing import hash_password, issue_mock_token, verify_password
from app.utils.logger import logger
from app.utils.serialization import serialize_user
from app.utils.timestamps import utc_now

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
) -> AuthResponse:
    """
    Create a learner account.

    Returns a mock token so the frontend can log the user in straight away.

    Args:
        request: Username, email and password
        db: Database session

    Returns:
        Auth response with the new user
    """
    if not request.username or not request.email or not request.password:
        raise validation_error("Username, email, and password are required")

    try:
        existing = get_by_any_field(db, User, email=request.email, username=request.username)
        if existing:
            raise validation_error("User with this email or username already exists")

        user = User(
            username=request.username,
            email=request.email,
            password_hash=hash_password(request.password),
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info(f"Registered user {user.username} (id: {user.id})")

        return AuthResponse(
            success=True,
            message="User registered successfully",
            user=serialize_user(user),
            token=issue_mock_token(user.id),
        )
    except HTTPException:
        raise
    except IntegrityError:
        db.rollback()
        raise validation_error("User with this email or username already exists")
    except Exception as e:
        db.rollback()
        logger.error(f"Registration error for {request.username}: {e}", exc_info=True)
        raise handle_database_error(e, "register user")


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
) -> AuthResponse:
    """
    Check credentials and record the login time.

    Args:
        request: Login credentials
        db: Database session

    Returns:
        Auth response with user data
    """
    if not request.email or not request.password:
        raise validation_error("Email and password are required")

    try:
        user = get_by_field(db, User, "email", request.email)

        if not user or not verify_password(request.password, user.password_hash):
            raise authentication_error("Invalid email or password")

        user.last_login = utc_now()
        db.commit()
        db.refresh(user)

        return AuthResponse(
            success=True,
            message="Login successful",
            user=serialize_user(user),
            token=issue_mock_token(user.id),
        )
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Login error for {request.email}: {e}", exc_info=True)
        raise handle_database_error(e, "log in")
