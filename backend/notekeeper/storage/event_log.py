import json
import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from notekeeper.storage.users_store import _user_key

logger = logging.getLogger(__name__)


def _events_path(base_dir: Path, user_id: str) -> Path:
    return base_dir / "activity" / f"{_user_key(user_id)}.log"


@dataclass(frozen=True)
class Event:
    event_type: str
    user_id: str
    note_id: Optional[str] = None
    meta: Optional[dict[str, Any]] = None

    def to_json_line(self, ts: datetime) -> str:
        obj = {
            "event_id": str(uuid.uuid4()),
            "event_type": self.event_type,
            "ts": ts.astimezone(timezone.utc).isoformat(),
            "user_id": self.user_id,
            "note_id": self.note_id,
            "meta": self.meta or {},
        }
        return json.dumps(obj, ensure_ascii=False)


class EventLog:
    """Append-only per-user activity log (JSON lines)."""

    def __init__(self, base_dir: Path, clock):
        self.base_dir = base_dir
        self.clock = clock

    def emit(self, event: Event) -> None:
        path = _events_path(self.base_dir, event.user_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # append-only, durable write
            with path.open("a", encoding="utf-8") as f:
                f.write(event.to_json_line(self.clock.now()) + "\n")
                f.flush()
                os.fsync(f.fileno())
        except OSError:
            # the operation itself already succeeded
            logger.exception("Failed to append %s event for note %s", event.event_type, event.note_id)

    def recent(self, user_id: str, limit: int = 50) -> list[dict[str, Any]]:
        path = _events_path(self.base_dir, user_id)
        if not path.exists():
            return []
        out = []
        for line in path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                out.append(json.loads(line))
            except ValueError:
                logger.warning("Skipping corrupt activity line for %s", user_id)
        return out[-limit:][::-1]
