import logging
from typing import Any, Optional

from legalletter.audit.models import AuditEntry
from legalletter.shared.clock import Clock
from legalletter.shared.db import KeyValueStore

logger = logging.getLogger(__name__)

ACTIVITIES_KEY = "activities"


class AuditLog:
    """Append-only activity log, capped at ``limit`` entries (oldest dropped first)."""

    def __init__(self, kv: KeyValueStore, clock: Clock, limit: int = 1000):
        self.kv = kv
        self.clock = clock
        self.limit = limit

    def record(self, action: str, user_id: Optional[str] = None, details: Any = None) -> Optional[AuditEntry]:
        # Never raises: a failed audit write must not fail the caller.
        try:
            entry = AuditEntry(action=action, user_id=user_id, details=details, timestamp=self.clock.now())
            rows = self.kv.get_json(ACTIVITIES_KEY, [])
            rows.append(entry.model_dump(mode="json"))
            if len(rows) > self.limit:
                del rows[: len(rows) - self.limit]
            self.kv.set_json(ACTIVITIES_KEY, rows)
            logger.debug("audit %s", action, extra={"audit_user": user_id})
            return entry
        except Exception:
            logger.exception("audit write failed for action=%s", action)
            return None

    def entries(self, user_id: Optional[str] = None, action: Optional[str] = None) -> list[AuditEntry]:
        items = [AuditEntry.model_validate(r) for r in self.kv.get_json(ACTIVITIES_KEY, [])]
        if user_id is not None:
            items = [e for e in items if e.user_id == user_id]
        if action is not None:
            items = [e for e in items if e.action == action]
        return items

    def count(self) -> int:
        return len(self.kv.get_json(ACTIVITIES_KEY, []))
