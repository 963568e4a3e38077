"""Durable local queue of clickstream events that could not be delivered."""
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from app.utils.logger import logger
from app.utils.timestamps import utc_now_iso


def entry_key(event: Mapping[str, Any]) -> str:
    """Identity of a queued event: its clientEventId, else its full content."""
    client_event_id = event.get("clientEventId")
    if client_event_id:
        return str(client_event_id)
    return json.dumps(event, sort_keys=True, default=str)


class RetryQueue:
    """
    JSON file holding `{event, attempts, queuedAt}` entries in queue order.

    A missing or unreadable file is an empty queue. Writes replace the file
    atomically so a crash mid-write never leaves a truncated queue behind.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            entries = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable retry queue {self.path}: {e}")
            return []
        if not isinstance(entries, list):
            logger.warning(f"Ignoring malformed retry queue {self.path}")
            return []
        return [
            entry for entry in entries
            if isinstance(entry, dict) and isinstance(entry.get("event"), dict)
        ]

    def save(self, entries: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(entries, handle, indent=2, default=str)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def append(self, event: Dict[str, Any]) -> bool:
        """Queue an event; returns False if the same event is already queued."""
        entries = self.load()
        key = entry_key(event)
        if any(entry_key(entry["event"]) == key for entry in entries):
            return False
        entries.append({"event": event, "attempts": 0, "queuedAt": utc_now_iso()})
        self.save(entries)
        return True

    def __len__(self) -> int:
        return len(self.load())
