"""Analytics views recomputed from the clickstream on every request."""
import csv
import io
import json
from datetime import timezone, tzinfo
from typing import Literal
from zoneinfo import ZoneInfo
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.api.clickstream import get_event_filter
from app.config import settings
from app.database import get_db
from app.schemas.analytics import (
    ClickstreamSummaryResponse,
    DashboardSummaryResponse,
    LearningProgressResponse,
)
from app.services.aggregation import (
    event_data_of,
    event_type_of,
    summarize_clickstream,
    summarize_dashboard,
    summarize_progress,
)
from app.services.event_log import EventFilter, EventLogStore
from app.utils.logger import logger
from app.utils.serialization import serialize_event
from app.utils.timestamps import utc_now, utc_now_iso

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

EXPORT_COLUMNS = ["Event ID", "User ID", "Session ID", "Event Type", "Timestamp", "Course ID", "Additional Data"]


def analytics_timezone() -> tzinfo:
    """Zone used to bucket events into calendar days."""
    if settings.analytics_timezone.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(settings.analytics_timezone)


def _fetch(db: Session, criteria: EventFilter) -> list:
    return [serialize_event(event) for event in EventLogStore(db).query(criteria)]


def _analytics_failure(view: str, error: Exception) -> HTTPException:
    logger.error(f"Failed to build {view}: {error}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to fetch {view}",
    )


@router.get("/summary", response_model=ClickstreamSummaryResponse)
async def get_clickstream_summary(
    criteria: EventFilter = Depends(get_event_filter),
    db: Session = Depends(get_db),
) -> ClickstreamSummaryResponse:
    """Event-type histogram, sessions, top courses and quiz completions."""
    try:
        events = _fetch(db, criteria)
        return ClickstreamSummaryResponse(
            success=True,
            count=len(events),
            summary=summarize_clickstream(events),
        )
    except Exception as e:
        raise _analytics_failure("analytics summary", e)


@router.get("/progress/{user_id}", response_model=LearningProgressResponse)
async def get_learning_progress(
    user_id: str,
    db: Session = Depends(get_db),
) -> LearningProgressResponse:
    """Courses, quizzes, media, achievements and streak for one learner."""
    try:
        events = _fetch(db, EventFilter(user_id=user_id))
        progress = summarize_progress(events, tz=analytics_timezone())
        logger.debug(
            f"Progress for {user_id}: {len(progress.achievements)} achievements, "
            f"streak {progress.learningStreak}"
        )
        return LearningProgressResponse(success=True, userId=user_id, progress=progress)
    except Exception as e:
        raise _analytics_failure("learning progress", e)


@router.get("/dashboard/{user_id}", response_model=DashboardSummaryResponse)
async def get_dashboard_summary(
    user_id: str,
    db: Session = Depends(get_db),
) -> DashboardSummaryResponse:
    """Module counts, badges, proficiency tier and progress for one learner."""
    try:
        events = _fetch(db, EventFilter(user_id=user_id))
        dashboard = summarize_dashboard(events, now=utc_now(), tz=analytics_timezone())
        return DashboardSummaryResponse(success=True, userId=user_id, dashboard=dashboard)
    except Exception as e:
        raise _analytics_failure("dashboard summary", e)


@router.get("/export")
async def export_clickstream(
    format: Literal["csv", "json"] = Query("csv", description="Export file format"),
    criteria: EventFilter = Depends(get_event_filter),
    db: Session = Depends(get_db),
) -> Response:
    """Download the filtered events as CSV, or as JSON together with their summary."""
    try:
        events = _fetch(db, criteria)
    except Exception as e:
        raise _analytics_failure("analytics export", e)

    filename = f"learning_analytics_{utc_now().date().isoformat()}.{format}"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

    if format == "json":
        body = {
            "exportDate": utc_now_iso(),
            "totalEvents": len(events),
            "analytics": summarize_clickstream(events).model_dump(),
            "rawData": events,
        }
        return Response(
            content=json.dumps(body, indent=2, default=str),
            media_type="application/json",
            headers=headers,
        )

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerow(EXPORT_COLUMNS)
    for event in events:
        data = event_data_of(event)
        writer.writerow([
            event["id"],
            event["userId"],
            event["sessionId"],
            event_type_of(event),
            event["timestamp"],
            data.get("courseId", ""),
            json.dumps(event.get("eventData") or {}),
        ])
    logger.info(f"Exported {len(events)} clickstream events as CSV")
    return Response(content=buffer.getvalue(), media_type="text/csv", headers=headers)
