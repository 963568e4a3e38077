"""Learning content endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models import Content
from app.schemas.content import ContentCreate, ContentCreateResponse, ContentListResponse, SeedResponse
from app.utils.exceptions import handle_database_error
from app.utils.logger import logger
from app.utils.serialization import serialize_content

router = APIRouter(prefix="/api", tags=["content"])

SAMPLE_CONTENT = [
    {
        "title": "Introduction to Web Development",
        "type": "text",
        "description": "Learn the basics of HTML, CSS, and JavaScript",
    },
    {
        "title": "JavaScript Fundamentals",
        "type": "video",
        "description": "Master JavaScript concepts with practical examples",
        "video_url": "https://www.youtube.com/watch?v=PkZNo7MFNFg",
    },
    {
        "title": "HTML Basics Quiz",
        "type": "quiz",
        "description": "Test your HTML knowledge",
        "quiz_data": {
            "questions": [
                {
                    "question": "What does HTML stand for?",
                    "options": [
                        "Hyper Text Markup Language",
                        "High Tech Modern Language",
                        "Home Tool Markup Language",
                    ],
                    "correct": 0,
                }
            ]
        },
    },
]


@router.get("/content", response_model=ContentListResponse)
async def list_content(db: Session = Depends(get_db)) -> ContentListResponse:
    """List all learning content in creation order."""
    try:
        content = db.query(Content).order_by(Content.id.asc()).all()
        return ContentListResponse(success=True, content=[serialize_content(item) for item in content])
    except Exception as e:
        logger.error(f"Get content error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch content",
        )


@router.post("/content", response_model=ContentCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_content(
    request: ContentCreate,
    db: Session = Depends(get_db),
) -> ContentCreateResponse:
    """Create a text, video or quiz content item."""
    try:
        item = Content(
            title=request.title,
            type=request.type,
            description=request.description,
            video_url=request.videoUrl,
            quiz_data=request.quizData,
        )
        db.add(item)
        db.commit()
        db.refresh(item)

        return ContentCreateResponse(
            success=True,
            message="Content created successfully",
            content=serialize_content(item),
        )
    except Exception as e:
        db.rollback()
        logger.error(f"Create content error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create content",
        )


@router.post("/seed", response_model=SeedResponse)
async def seed_content(db: Session = Depends(get_db)) -> SeedResponse:
    """Replace all content with the sample course catalogue."""
    try:
        db.query(Content).delete()
        db.add_all([Content(**item) for item in SAMPLE_CONTENT])
        db.commit()
        logger.info(f"Seeded {len(SAMPLE_CONTENT)} sample content items")
        return SeedResponse(success=True, message="Sample data seeded successfully")
    except Exception as e:
        db.rollback()
        logger.error(f"Seed error: {e}", exc_info=True)
        raise handle_database_error(e, "seed data")
