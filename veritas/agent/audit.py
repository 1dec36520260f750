"""Best-effort JSONL audit trail.

Entries are appended to `<log_dir>/<category>/<YYYY-MM-DD>.jsonl`. Write
failures are logged and never raised: the audit trail must not break a
user request.
"""

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

AUDIT = "audit"
CANCELLATIONS = "cancellations"
SKILL_DISCOVERY = "skill-discovery"
NO_MATCH = "no-match"

MAX_FIELD_LENGTH = 2000


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > MAX_FIELD_LENGTH:
        return value[:MAX_FIELD_LENGTH] + "..."
    return value


def _user_fields(user: Any) -> dict[str, Any]:
    if user is None:
        return {"user": None, "roles": []}
    return {"user": getattr(user, "username", None), "roles": list(getattr(user, "roles", []) or [])}


class AuditLog:
    """Append-only JSONL sink split by category and day."""

    def __init__(self, log_dir: Path, enabled: bool = True):
        self.log_dir = Path(log_dir)
        self.enabled = enabled
        self._lock = threading.Lock()

    def _path(self, category: str, now: datetime) -> Path:
        return self.log_dir / category / f"{now.strftime('%Y-%m-%d')}.jsonl"

    def write(self, category: str, entry: dict[str, Any]) -> bool:
        """Append one entry; returns False when it could not be written."""
        if not self.enabled:
            return False
        now = datetime.now(timezone.utc)
        record = {"timestamp": now.isoformat(), **{k: _clip(v) for k, v in entry.items()}}
        path = self._path(category, now)
        try:
            line = json.dumps(record, default=str, ensure_ascii=False)
            with self._lock:
                path.parent.mkdir(parents=True, exist_ok=True)
                with path.open("a", encoding="utf-8") as handle:
                    handle.write(line + "\n")
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to write {category} audit entry: {e}")
            return False

    def log_execution(
        self,
        user: Any,
        task: str,
        skill: str,
        arguments: dict[str, Any],
        success: bool,
        result: Any = None,
    ) -> bool:
        return self.write(AUDIT, {
            **_user_fields(user),
            "task": task,
            "skill": skill,
            "arguments": arguments,
            "success": success,
            "result": result,
        })

    def log_cancellation(self, user: Any, task: str, skill: str, arguments: dict[str, Any]) -> bool:
        return self.write(CANCELLATIONS, {
            **_user_fields(user),
            "task": task,
            "skill": skill,
            "arguments": arguments,
            "reason": "user_cancelled",
        })

    def log_discovery(self, user: Any, task: str, selected: str, ranked: list[str]) -> bool:
        return self.write(SKILL_DISCOVERY, {
            **_user_fields(user),
            "task": task,
            "selectedSkill": selected,
            "rankedSkills": ranked,
        })

    def log_no_match(self, user: Any, task: str, reason: str) -> bool:
        return self.write(NO_MATCH, {**_user_fields(user), "task": task, "reason": reason})
