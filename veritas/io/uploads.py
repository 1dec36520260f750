"""Registry of files uploaded alongside a task.

Uploads are announced inside the task text with marker lines such as::

    [[uploaded-file]] {"id": "a1b2", "name": "policy.md", "url": "/blobs/a1b2"}

Each upload is then reachable by its id, name, url, path or basename.
"""

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

UPLOAD_MARKER = "[[uploaded-file]]"
DEFAULT_BLOBS_DIR = "blobs"
URL_SCHEME = re.compile(r"^[a-z]+://", re.IGNORECASE)


@dataclass
class UploadRecord:
    id: str | None
    name: str | None = None
    url: str | None = None
    mime: str | None = None
    size: float | None = None
    path: Path | None = None
    aliases: list[str] = field(default_factory=list)


def _key(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_upload_markers(task_text: str | None) -> list[dict[str, Any]]:
    """Parse every `[[uploaded-file]] {json}` line of a task description."""
    if not task_text or not isinstance(task_text, str):
        return []

    entries = []
    for line in task_text.splitlines():
        line = line.lstrip()
        if line[:1] in (":", "#"):
            line = line[1:].lstrip()
        if not line.startswith(UPLOAD_MARKER):
            continue
        payload = line[len(UPLOAD_MARKER):].strip()
        if not payload:
            continue
        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError:
            logger.debug(f"Ignoring malformed upload marker: {payload[:80]}")
            continue
        if not isinstance(parsed, dict) or not _clean(parsed.get("id")):
            continue
        size = parsed.get("size")
        entries.append({
            "id": _clean(parsed.get("id")),
            "name": _clean(parsed.get("name")),
            "url": _clean(parsed.get("url")),
            "mime": _clean(parsed.get("mime")),
            "size": size if isinstance(size, (int, float)) and not isinstance(size, bool) else None,
        })
    return entries


class UploadRegistry:
    """Alias -> upload record lookup for one agent session."""

    def __init__(self, workspace: Path | None = None, blobs_dir: str = DEFAULT_BLOBS_DIR):
        self.workspace = Path(workspace or Path.cwd())
        self.blobs_dir = blobs_dir
        self._records: dict[str, UploadRecord] = {}

    def _build_record(self, entry: dict[str, Any]) -> UploadRecord:
        record = UploadRecord(
            id=_clean(entry.get("id")),
            name=_clean(entry.get("name")),
            url=_clean(entry.get("url")),
            mime=_clean(entry.get("mime")),
            size=entry.get("size"),
        )

        candidates = [entry.get("path"), entry.get("local_path")]
        if record.url and not URL_SCHEME.match(record.url):
            candidates.append(str(self.workspace / record.url.lstrip("/")))
        if record.id:
            candidates.append(str(self.workspace / self.blobs_dir / record.id))
        for candidate in candidates:
            if candidate:
                path = Path(candidate)
                record.path = path if path.is_absolute() else (self.workspace / path).resolve()
                break

        potential = [record.id, record.name, record.url, record.path]
        potential += [os.path.basename(str(v)) for v in (record.name, record.url, record.path) if v]
        record.aliases = list(dict.fromkeys(k for k in map(_key, potential) if k))
        return record

    def register(self, entries: list[dict[str, Any] | str]) -> list[UploadRecord]:
        records = []
        for entry in entries or []:
            if isinstance(entry, str):
                entry = {"id": entry}
            if not isinstance(entry, dict):
                continue
            record = self._build_record(entry)
            if not (record.id or record.name or record.path):
                continue
            for alias in record.aliases:
                self._records[alias] = record
            records.append(record)
        return records

    def register_from_task(self, task_text: str | None) -> list[UploadRecord]:
        """Register every upload announced in a task description."""
        return self.register(parse_upload_markers(task_text))

    def resolve(self, identifier: str | None) -> UploadRecord | None:
        key = _key(identifier)
        if not key:
            return None
        if key in self._records:
            return self._records[key]
        return self._records.get(_key(os.path.basename(str(identifier))))

    def uploads(self) -> list[UploadRecord]:
        """Distinct registered uploads."""
        seen: list[UploadRecord] = []
        for record in self._records.values():
            if not any(record is s for s in seen):
                seen.append(record)
        return seen

    def __len__(self) -> int:
        return len(self.uploads())
