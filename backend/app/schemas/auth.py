"""Schemas for registration and login."""
from pydantic import BaseModel
from typing import Any, Dict, Optional


class RegisterRequest(BaseModel):
    """Fields are optional so missing values produce a 400, not a 422."""
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(BaseModel):
    success: bool
    message: str
    user: Dict[str, Any]
    token: str
