"""Clickstream ingestion and query endpoints."""
from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from app.constants import ANONYMOUS_USER, UNKNOWN_EVENT_TYPE, UNKNOWN_SESSION
from app.database import get_db
from app.schemas.clickstream import (
    ClickstreamEventIn,
    ClickstreamIngestResponse,
    ClickstreamQueryResponse,
    UserClickstreamResponse,
)
from app.services.event_log import EventFilter, EventLogStore
from app.utils.exceptions import StorageError, validation_error
from app.utils.logger import logger
from app.utils.serialization import serialize_event
from app.utils.timestamps import parse_timestamp, to_iso, to_naive_utc, utc_now_iso

router = APIRouter(prefix="/api", tags=["clickstream"])


def build_event_fields(payload: ClickstreamEventIn, request: Request) -> Dict[str, Any]:
    """
    Normalize an incoming payload into event log columns.

    Missing fields get defaults rather than failing the request, and the
    legacy aliases are filled from whichever name the client used.

    Args:
        payload: Parsed request body
        request: Incoming request, for the User-Agent header and client address

    Returns:
        Column values for `ClickstreamEvent`
    """
    event_type = payload.eventType or payload.action or UNKNOWN_EVENT_TYPE
    event_data = payload.eventData if payload.eventData is not None else (payload.details or {})
    timestamp = payload.timestamp
    if timestamp is None or timestamp == "":
        timestamp = utc_now_iso()
    elif isinstance(timestamp, (int, float)):
        # Epoch milliseconds are stored in the same ISO form browsers send
        parsed = parse_timestamp(timestamp)
        timestamp = to_iso(parsed) if parsed else str(timestamp)
    page = payload.page or event_data.get("page")

    return {
        "client_event_id": payload.clientEventId or None,
        "session_id": payload.sessionId or UNKNOWN_SESSION,
        "user_id": payload.userId or ANONYMOUS_USER,
        "event_type": event_type,
        "action": payload.action or event_type,
        "event_data": event_data,
        "details": payload.details if payload.details is not None else event_data,
        "timestamp": timestamp,
        "occurred_at": to_naive_utc(parse_timestamp(timestamp)),
        "url": payload.url,
        "user_agent": payload.userAgent or request.headers.get("user-agent"),
        "viewport": payload.viewport,
        "ip": request.client.host if request.client else None,
        "page": str(page) if page is not None else None,
        "element_id": payload.elementId,
        "additional_data": payload.additionalData,
    }


def get_event_filter(
    userId: Optional[str] = Query(None, description="Exact user id or username"),
    page: Optional[str] = Query(None, description="Exact page name"),
    startDate: Optional[str] = Query(None, description="Inclusive lower bound on event timestamp"),
    endDate: Optional[str] = Query(None, description="Inclusive upper bound on event timestamp"),
) -> EventFilter:
    """Build the conjunctive event filter from query parameters."""
    start = parse_timestamp(startDate) if startDate else None
    if startDate and start is None:
        raise validation_error(f"Invalid startDate: {startDate}")

    end = parse_timestamp(endDate) if endDate else None
    if endDate and end is None:
        raise validation_error(f"Invalid endDate: {endDate}")

    return EventFilter(user_id=userId or None, page=page or None, start=start, end=end)


@router.post("/clickstream", response_model=ClickstreamIngestResponse)
async def record_clickstream_event(
    payload: ClickstreamEventIn,
    request: Request,
    db: Session = Depends(get_db),
) -> ClickstreamIngestResponse:
    """
    Record one clickstream event.

    The event is enriched with the server-observed user agent and client
    address, assigned an id and appended to the event log. Re-delivering an
    event with the same clientEventId returns the id of the stored copy.

    Args:
        payload: Event as built by the capture client
        request: Incoming request
        db: Database session

    Returns:
        Ingest response with the event id
    """
    try:
        fields = build_event_fields(payload, request)
        event, created = EventLogStore(db).append(fields)

        if created:
            logger.info(
                f"Clickstream recorded: {event.event_type} "
                f"(session: {event.session_id[:8]}..., user: {event.user_id})"
            )
        else:
            logger.info(f"Duplicate clickstream delivery collapsed into event {event.id}")

        return ClickstreamIngestResponse(
            success=True,
            message="Clickstream data recorded",
            id=event.id,
        )
    except StorageError as e:
        logger.error(f"Clickstream error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record clickstream data",
        )


@router.get("/analytics/clickstream", response_model=ClickstreamQueryResponse)
async def query_clickstream(
    criteria: EventFilter = Depends(get_event_filter),
    db: Session = Depends(get_db),
) -> ClickstreamQueryResponse:
    """
    Return every event matching all supplied filters, in append order.

    Events with an unparseable timestamp are left out of date-bounded
    queries and included otherwise.
    """
    try:
        events = EventLogStore(db).query(criteria)
        data = [serialize_event(event) for event in events]
        return ClickstreamQueryResponse(success=True, data=data, count=len(data))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Analytics error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch analytics data",
        )


@router.get("/clickstream/user/{user_id}", response_model=UserClickstreamResponse)
async def get_user_clickstream(
    user_id: str,
    db: Session = Depends(get_db),
) -> UserClickstreamResponse:
    """Return one user's events, most recent first."""
    try:
        events = EventLogStore(db).for_user(user_id)
        return UserClickstreamResponse(
            success=True,
            userId=user_id,
            totalActions=len(events),
            data=[serialize_event(event) for event in events],
        )
    except Exception as e:
        logger.error(f"Error fetching user clickstream data for {user_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch user data",
        )
