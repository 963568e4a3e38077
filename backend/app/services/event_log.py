"""Append-only clickstream event log backed by the SQL store.

Each append is a single-row INSERT inside its own transaction, so concurrent
ingestion requests cannot overwrite each other's writes. Rows are never
updated or deleted; primary key order is append order.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.event import ClickstreamEvent
from app.utils.exceptions import StorageError
from app.utils.logger import logger
from app.utils.timestamps import to_naive_utc


@dataclass(frozen=True)
class EventFilter:
    """Conjunctive read predicates; None means the predicate is inactive."""
    user_id: Optional[str] = None
    page: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_date_bounded(self) -> bool:
        return self.start is not None or self.end is not None


class EventLogStore:
    """Read and append access to the clickstream event log."""

    def __init__(self, db: Session):
        self.db = db

    def append(self, fields: Dict[str, Any]) -> Tuple[ClickstreamEvent, bool]:
        """
        Append one normalized event.

        A record whose `client_event_id` was already stored is not inserted
        again; the original record is returned instead.

        Args:
            fields: Column values for the new row

        Returns:
            Tuple of (stored event, created flag)

        Raises:
            StorageError: If the row cannot be written
        """
        client_event_id = fields.get("client_event_id")
        try:
            if client_event_id:
                existing = self._find_by_client_id(client_event_id)
                if existing is not None:
                    return existing, False

            event = ClickstreamEvent(**fields)
            self.db.add(event)
            self.db.commit()
            self.db.refresh(event)
            return event, True
        except IntegrityError as e:
            self.db.rollback()
            # Lost a race with a concurrent delivery of the same event
            existing = self._find_by_client_id(client_event_id) if client_event_id else None
            if existing is not None:
                return existing, False
            raise StorageError(f"Failed to append clickstream event: {e}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Failed to append clickstream event: {e}") from e

    def _find_by_client_id(self, client_event_id: str) -> Optional[ClickstreamEvent]:
        return self.db.query(ClickstreamEvent).filter(
            ClickstreamEvent.client_event_id == client_event_id
        ).first()

    def read_all(self) -> List[ClickstreamEvent]:
        """Return every event in append order, or [] if the log cannot be read."""
        return self.query(EventFilter())

    def query(self, criteria: EventFilter) -> List[ClickstreamEvent]:
        """
        Return events matching every active predicate, in append order.

        Events whose timestamp did not parse have no `occurred_at` and are
        excluded by any date bound. A read failure is logged and yields [].
        """
        try:
            query = self.db.query(ClickstreamEvent)
            if criteria.user_id is not None:
                query = query.filter(ClickstreamEvent.user_id == str(criteria.user_id))
            if criteria.page is not None:
                query = query.filter(ClickstreamEvent.page == criteria.page)
            if criteria.start is not None:
                query = query.filter(ClickstreamEvent.occurred_at >= to_naive_utc(criteria.start))
            if criteria.end is not None:
                query = query.filter(ClickstreamEvent.occurred_at <= to_naive_utc(criteria.end))
            return query.order_by(ClickstreamEvent.id.asc()).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to read clickstream events: {e}", exc_info=True)
            return []

    def for_user(self, user_id: str) -> List[ClickstreamEvent]:
        """Return one user's events, most recent first; unparseable timestamps sort last."""
        events = self.query(EventFilter(user_id=user_id))
        return sorted(
            events,
            key=lambda event: (event.occurred_at is not None, event.occurred_at or datetime.min, event.id),
            reverse=True,
        )

    def count(self) -> int:
        try:
            return self.db.query(ClickstreamEvent).count()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to count clickstream events: {e}", exc_info=True)
            return 0
