"""Main FastAPI application."""
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from app.api import analytics, auth, clickstream, content
from app.config import settings
from app.database import get_db, init_db
from app.models import ClickstreamEvent, Content, User
from app.utils.db import count_rows
from app.utils.logger import logger
from app.utils.timestamps import utc_now_iso


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"EduTrack API started ({settings.environment}, database: {settings.database_url})")
    yield


app = FastAPI(
    title="EduTrack Analytics API",
    description="Clickstream ingestion and learning analytics for the EduTrack platform",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info(f"{request.method} {request.url.path} -> {response.status_code}")
    return response


# Include routers
app.include_router(clickstream.router)
app.include_router(analytics.router)
app.include_router(auth.router)
app.include_router(content.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "EduTrack Analytics API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health_check(db: Session = Depends(get_db)):
    """Liveness check with record counts per collection."""
    return {
        "message": "EduTrack Analytics Platform API is running!",
        "timestamp": utc_now_iso(),
        "environment": settings.environment,
        "database": db.get_bind().dialect.name,
        "stats": {
            "users": count_rows(db, User),
            "content": count_rows(db, Content),
            "clickstream": count_rows(db, ClickstreamEvent),
        },
    }
