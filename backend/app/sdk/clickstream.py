"""Clickstream capture client.

Builds interaction events with session and user context, delivers them to
`POST /api/clickstream` and keeps every undelivered event in a durable local
retry queue. One `ClickstreamClient` is created per page session and passed to
whatever needs to track events.
"""
import asyncio
import secrets
import string
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import httpx

from app.config import settings
from app.constants import ANONYMOUS_USER, EventType
from app.sdk.retry_queue import RetryQueue, entry_key
from app.services.aggregation import quiz_percentage
from app.utils.exceptions import DeliveryError
from app.utils.logger import logger
from app.utils.timestamps import utc_now, utc_now_iso

DEFAULT_USER_AGENT = "edutrack-clickstream/0.1.0"
_SESSION_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_id() -> str:
    """`session_<epoch ms>_<9 random base36 chars>`."""
    millis = int(utc_now().timestamp() * 1000)
    suffix = "".join(secrets.choice(_SESSION_SUFFIX_ALPHABET) for _ in range(9))
    return f"session_{millis}_{suffix}"


def session_started_at(session_id: str) -> Optional[datetime]:
    """Recover the session start time embedded in a generated session id."""
    parts = session_id.split("_")
    if len(parts) < 2 or not parts[1].isdigit():
        return None
    return datetime.fromtimestamp(int(parts[1]) / 1000, tz=timezone.utc)


def format_duration(seconds: int) -> str:
    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


@dataclass
class CaptureContext:
    """Session and user identity attached to every event of one page session."""
    session_id: str = field(default_factory=generate_session_id)
    user_id: Optional[str] = None
    initialized: bool = False
    url: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    viewport: Dict[str, int] = field(default_factory=lambda: {"width": 0, "height": 0})


class ClickstreamClient:
    """Tracks learner interactions and delivers them to the clickstream API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        retry_queue: Optional[RetryQueue] = None,
        timeout: Optional[float] = None,
        max_retry_attempts: Optional[int] = None,
        url: Optional[str] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        viewport: Optional[Dict[str, int]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.clickstream_api_base_url).rstrip("/")
        self.retry_queue = retry_queue or RetryQueue(Path(settings.clickstream_retry_queue_path))
        self.timeout = timeout if timeout is not None else settings.clickstream_delivery_timeout
        self.max_retry_attempts = (
            max_retry_attempts if max_retry_attempts is not None else settings.clickstream_max_retry_attempts
        )
        self.context = CaptureContext(url=url, user_agent=user_agent)
        if viewport:
            self.context.viewport = dict(viewport)
        self._transport = transport
        self._queue_lock = asyncio.Lock()

        logger.info(f"Clickstream client created (session: {self.context.session_id})")

    @property
    def session_id(self) -> str:
        return self.context.session_id

    @property
    def user_id(self) -> Optional[str]:
        return self.context.user_id

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _deliver(self, client: httpx.AsyncClient, event: Dict[str, Any]) -> Dict[str, Any]:
        """POST one event; any failure, including a timeout, raises DeliveryError."""
        try:
            response = await asyncio.wait_for(
                client.post(f"{self.base_url}/clickstream", json=event),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise DeliveryError(f"Timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise DeliveryError(str(e) or type(e).__name__) from e

        if not response.is_success:
            raise DeliveryError(f"HTTP {response.status_code}: {response.reason_phrase}")
        try:
            body = response.json()
        except ValueError as e:
            raise DeliveryError(f"Invalid response body: {e}") from e
        if not isinstance(body, Mapping):
            raise DeliveryError(f"Unexpected response body: {type(body).__name__}")
        return body

    def build_event(self, event_type: str, event_data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        event_data = dict(event_data or {})
        return {
            "clientEventId": uuid.uuid4().hex,
            "sessionId": self.context.session_id,
            "userId": self.context.user_id,
            "eventType": event_type,
            "action": event_type,
            "eventData": event_data,
            "details": event_data,
            "timestamp": utc_now_iso(),
            "url": self.context.url,
            "userAgent": self.context.user_agent,
            "viewport": dict(self.context.viewport),
        }

    async def initialize(self, user: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Bind a user to this session and emit session_start.

        The user id is the username, else the id, else "anonymous".

        Args:
            user: User record as returned by the auth endpoints

        Returns:
            Server response for the session_start event, or None if it was queued
        """
        user = user or {}
        identity = user.get("username") or user.get("id") or ANONYMOUS_USER
        self.context.user_id = str(identity)
        self.context.initialized = True

        logger.info(f"Clickstream tracking initialized (user: {self.context.user_id}, session: {self.session_id})")

        return await self.track_event(EventType.SESSION_START, {
            "user": self.context.user_id,
            "userUsername": user.get("username"),
            "userId": user.get("id"),
            "sessionId": self.session_id,
            "userAgent": self.context.user_agent,
            "viewport": dict(self.context.viewport),
            "timestamp": utc_now_iso(),
        })

    async def track_event(self, event_type: str, event_data: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Build and deliver one event.

        Delivery failures never reach the caller: the event is queued for
        retry and None is returned.

        Args:
            event_type: Event type tag
            event_data: Event-type-specific attributes

        Returns:
            Server response (`{success, message, id}`) or None
        """
        if not self.context.initialized and event_type != EventType.SESSION_START:
            logger.error("Clickstream not initialized. Call initialize() first.")
            return None

        event = self.build_event(event_type, event_data)
        logger.debug(f"Event tracked: {event_type}")

        try:
            async with self._http_client() as client:
                result = await self._deliver(client, event)
        except DeliveryError as e:
            logger.warning(f"Failed to send clickstream event {event_type}: {e}")
            await self._store_failed_event(event)
            return None

        logger.debug(f"Event sent to server successfully: {event_type} (id: {result.get('id')})")
        return result

    async def _store_failed_event(self, event: Dict[str, Any]) -> None:
        async with self._queue_lock:
            try:
                self.retry_queue.append(event)
                logger.info(f"Failed event stored for retry: {event['eventType']}")
            except OSError as e:
                logger.error(f"Failed to store event in retry queue: {e}", exc_info=True)

    async def retry_failed_events(self) -> int:
        """
        Re-deliver every queued event concurrently.

        Only acknowledged events leave the queue. Failed ones keep their place
        with one more attempt counted and are discarded once they reach
        `max_retry_attempts`. Events queued while the retry is in flight are kept.

        Returns:
            Number of events delivered
        """
        async with self._queue_lock:
            snapshot = self.retry_queue.load()
        if not snapshot:
            return 0

        logger.info(f"Retrying {len(snapshot)} failed events")

        async with self._http_client() as client:
            results = await asyncio.gather(
                *(self._deliver(client, entry["event"]) for entry in snapshot),
                return_exceptions=True,
            )

        delivered = set()
        failed = set()
        for entry, result in zip(snapshot, results):
            key = entry_key(entry["event"])
            if isinstance(result, DeliveryError):
                failed.add(key)
            elif isinstance(result, BaseException):
                logger.error(f"Unexpected retry failure: {result!r}")
                failed.add(key)
            else:
                delivered.add(key)

        async with self._queue_lock:
            remaining = []
            for entry in self.retry_queue.load():
                key = entry_key(entry["event"])
                if key in delivered:
                    continue
                if key in failed:
                    entry["attempts"] = int(entry.get("attempts", 0)) + 1
                    if entry["attempts"] >= self.max_retry_attempts:
                        logger.warning(
                            f"Dropping clickstream event {entry['event'].get('eventType')} "
                            f"after {entry['attempts']} failed attempts"
                        )
                        continue
                remaining.append(entry)
            try:
                self.retry_queue.save(remaining)
            except OSError as e:
                logger.error(f"Failed to update retry queue: {e}", exc_info=True)

        logger.info(f"Failed events retry completed ({len(delivered)} delivered, {len(remaining)} still queued)")
        return len(delivered)

    # Specific tracking methods for different interaction types

    async def track_navigation(self, from_page: str, to_page: str, **data: Any):
        return await self.track_event(EventType.NAVIGATION, {"from": from_page, "to": to_page, **data})

    async def track_page_view(self, page_name: str, **data: Any):
        return await self.track_event(EventType.PAGE_VIEW, {
            "page": page_name,
            "timestamp": utc_now_iso(),
            **data,
        })

    async def track_course_view(self, course_id: Any, course_title: Optional[str] = None, course_type: Optional[str] = None):
        return await self.track_event(EventType.COURSE_VIEW, {
            "courseId": course_id,
            "courseTitle": course_title,
            "courseType": course_type,
            "viewStartTime": utc_now_iso(),
        })

    async def track_quiz_start(self, course_id: Any, course_title: Optional[str], total_questions: int):
        return await self.track_event(EventType.QUIZ_START, {
            "courseId": course_id,
            "courseTitle": course_title,
            "totalQuestions": total_questions,
            "startTime": utc_now_iso(),
        })

    async def track_quiz_answer(self, course_id: Any, question_index: int, selected_answer: Any, is_correct: bool):
        return await self.track_event(EventType.QUIZ_ANSWER, {
            "courseId": course_id,
            "questionIndex": question_index,
            "selectedAnswer": selected_answer,
            "isCorrect": is_correct,
            "answerTime": utc_now_iso(),
        })

    async def track_quiz_complete(
        self,
        course_id: Any,
        score: float,
        total_questions: int,
        time_spent: Optional[float] = None,
        course_title: Optional[str] = None,
    ):
        data = {
            "courseId": course_id,
            "score": score,
            "totalQuestions": total_questions,
            "percentage": quiz_percentage(score, total_questions),
            "timeSpent": time_spent,
            "completedAt": utc_now_iso(),
        }
        if course_title is not None:
            data["courseTitle"] = course_title
        return await self.track_event(EventType.QUIZ_COMPLETE, data)

    async def track_video_play(self, course_id: Any, video_url: str):
        return await self.track_event(EventType.VIDEO_PLAY, {
            "courseId": course_id,
            "videoUrl": video_url,
            "playTime": utc_now_iso(),
        })

    async def track_video_pause(self, course_id: Any, video_url: str, current_time: float):
        return await self.track_event(EventType.VIDEO_PAUSE, {
            "courseId": course_id,
            "videoUrl": video_url,
            "currentTime": current_time,
            "pauseTime": utc_now_iso(),
        })

    async def track_text_content_view(self, course_id: Any, scroll_depth: float = 0):
        return await self.track_event(EventType.TEXT_CONTENT_VIEW, {
            "courseId": course_id,
            "scrollDepth": scroll_depth,
            "viewTime": utc_now_iso(),
        })

    async def track_button_click(self, button_name: str, context: Optional[Dict[str, Any]] = None):
        return await self.track_event(EventType.BUTTON_CLICK, {
            "buttonName": button_name,
            "context": context or {},
            "clickTime": utc_now_iso(),
        })

    async def track_filter(self, filter_type: str, filter_value: Any, results_count: int):
        return await self.track_event(EventType.FILTER_APPLIED, {
            "filterType": filter_type,
            "filterValue": filter_value,
            "resultsCount": results_count,
            "filterTime": utc_now_iso(),
        })

    async def track_session_end(self):
        return await self.track_event(EventType.SESSION_END, {
            "sessionDuration": self.session_duration_ms(),
            "endTime": utc_now_iso(),
        })

    def session_duration_ms(self) -> int:
        started = session_started_at(self.session_id)
        if started is None:
            return 0
        return max(0, int((utc_now() - started).total_seconds() * 1000))

    def get_session_stats(self) -> Dict[str, Any]:
        started = session_started_at(self.session_id)
        duration_ms = self.session_duration_ms()
        return {
            "sessionId": self.session_id,
            "userId": self.user_id,
            "duration": duration_ms,
            "durationFormatted": format_duration(duration_ms // 1000),
            "startTime": started.isoformat() if started else None,
            "currentTime": utc_now_iso(),
        }
