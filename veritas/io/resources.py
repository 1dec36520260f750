"""Resolve user supplied resource references into text."""

import re
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from veritas.io.uploads import UploadRegistry

MAX_PATH_LENGTH = 512
SCHEME_PATTERN = re.compile(r"^[a-z]+:", re.IGNORECASE)


@dataclass
class ResolvedResource:
    """A resource identifier (None for inline text) and its text."""
    resource: str | None
    text: str


def is_likely_local_path(value: str | None) -> bool:
    """True unless the value is empty or carries a URL/URI scheme."""
    if not value or not isinstance(value, str):
        return False
    return not SCHEME_PATTERN.match(value)


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def read_resource_file(
    resource: str | None,
    uploads: UploadRegistry | None = None,
    task: str | None = None,
) -> str | None:
    """
    Read a resource from the upload registry or the local filesystem.

    URLs are never fetched. Unreadable resources return None and are logged.
    """
    if not resource:
        return None
    if uploads is not None and task:
        uploads.register_from_task(task)

    candidates: list[Path] = []
    record = uploads.resolve(resource) if uploads is not None else None
    if record and record.path:
        candidates.append(record.path)
    if is_likely_local_path(resource):
        candidates.append(Path(resource))
    if not candidates:
        return None

    last_error: OSError | None = None
    tried: set[Path] = set()
    for candidate in candidates:
        resolved = candidate.expanduser().resolve()
        if resolved in tried:
            continue
        tried.add(resolved)
        try:
            return _read_text(resolved)
        except OSError as e:
            last_error = e

    if last_error:
        logger.warning(f"Failed to read resource {resource}: {last_error}")
    return None


def resolve_resource_input(
    value: str | None,
    uploads: UploadRegistry | None = None,
    task: str | None = None,
) -> ResolvedResource:
    """
    Turn an argument value into a resource and its text.

    Lookup order: registered upload, then a short single-line value naming an
    existing file, else the value itself is the inline text.
    """
    if not isinstance(value, str) or not value.strip():
        return ResolvedResource(resource=None, text="")
    trimmed = value.strip()

    if uploads is not None:
        if task:
            uploads.register_from_task(task)
        record = uploads.resolve(trimmed)
        if record and record.path:
            try:
                return ResolvedResource(resource=str(record.path), text=_read_text(record.path))
            except OSError as e:
                logger.debug(f"Registered upload {trimmed} is unreadable: {e}")

    if "\n" not in trimmed and len(trimmed) < MAX_PATH_LENGTH and is_likely_local_path(trimmed):
        try:
            path = Path(trimmed).expanduser().resolve()
            if path.is_file():
                return ResolvedResource(resource=str(path), text=_read_text(path))
        except (OSError, ValueError) as e:
            logger.debug(f"Treating {trimmed[:60]} as inline text: {e}")

    return ResolvedResource(resource=None, text=trimmed)
