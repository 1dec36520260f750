"""File-backed knowledge store for facts and rules, keyed by resource."""

import copy
import hashlib
import json
import math
import threading
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from veritas.config.schema import STORE_DIRNAME, STORE_FILENAME
from veritas.errors import KnowledgeStoreError

STORE_VERSION = 1
ASPECT_TYPES = ("fact", "rule")
STATEMENT_KEY_PREFIX = "statement:"
STATEMENT_HASH_LENGTH = 24


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_string_or_none(value: Any) -> str | None:
    """Trim strings to a non-empty value or None; stringify anything else."""
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    if value is None:
        return None
    return str(value)


def sanitize_tags(tags: Any) -> list[str]:
    """Lowercase, deduplicate and drop empty tags, keeping first-seen order."""
    if not isinstance(tags, (list, tuple)):
        return []
    unique: dict[str, None] = {}
    for entry in tags:
        label = to_string_or_none(entry)
        if label:
            unique.setdefault(label.lower(), None)
    return list(unique)


def clamp_confidence(value: Any) -> float | None:
    """Clamp a numeric confidence to [0, 1] rounded to 4 places; anything else is None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return round(max(0.0, min(1.0, float(value))), 4)


def _fallback_type(default_type: str | None) -> str:
    if isinstance(default_type, str) and default_type.lower() in ASPECT_TYPES:
        return default_type.lower()
    return "fact"


def _first_present(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def normalize_aspect(
    aspect: Any,
    resource_key: str | None = None,
    default_type: str | None = None,
) -> dict[str, Any] | None:
    """
    Normalize a raw fact/rule into a stored aspect record.

    Args:
        aspect: A string (taken as the content) or a mapping.
        resource_key: Key of the resource the aspect is filed under.
        default_type: Type used when the aspect's own type is missing or unknown.

    Returns:
        The normalized aspect, or None when no content can be resolved.
    """
    if not aspect:
        return None

    if isinstance(aspect, str):
        aspect = {"content": aspect}
    elif not isinstance(aspect, Mapping):
        return None

    content = to_string_or_none(_first_present(aspect, "content", "statement", "text"))
    if not content:
        return None

    fallback = _fallback_type(default_type)
    raw_type = (to_string_or_none(aspect.get("type")) or fallback).lower()

    metadata: dict[str, Any] = {}
    if isinstance(aspect.get("metadata"), Mapping):
        metadata = dict(aspect["metadata"])
    if resource_key and not metadata.get("resourceKey"):
        metadata["resourceKey"] = resource_key

    return {
        "id": to_string_or_none(aspect.get("id")) or f"auto-{uuid.uuid4()}",
        "type": raw_type if raw_type in ASPECT_TYPES else fallback,
        "title": to_string_or_none(aspect.get("title")),
        "content": content,
        "rationale": to_string_or_none(aspect.get("rationale") or aspect.get("reason")),
        "source": to_string_or_none(aspect.get("source")),
        "reference": to_string_or_none(aspect.get("reference")),
        "tags": sanitize_tags(aspect.get("tags")),
        "confidence": clamp_confidence(aspect.get("confidence")),
        "createdAt": to_string_or_none(aspect.get("createdAt")) or utc_now_iso(),
        "metadata": metadata,
    }


def derive_resource_key(resource: str | None, statement: str | None = "") -> str:
    """Resource identifier when present, else a hash of the statement text."""
    trimmed = to_string_or_none(resource)
    if trimmed:
        return trimmed
    digest = hashlib.sha256((statement or "").encode("utf-8")).hexdigest()
    return f"{STATEMENT_KEY_PREFIX}{digest[:STATEMENT_HASH_LENGTH]}"


def default_storage_path(workspace: Path | None = None) -> Path:
    return Path(workspace or Path.cwd()) / STORE_DIRNAME / STORE_FILENAME


def _empty_document() -> dict[str, Any]:
    return {"version": STORE_VERSION, "resources": {}}


class KnowledgeStore:
    """
    Resource-keyed collection of normalized facts and rules.

    The whole store is one JSON document that is rewritten on every mutation.
    A parsed copy is cached and reloaded from disk after each write.
    """

    def __init__(self, storage_path: Path | str | None = None, workspace: Path | None = None):
        self.storage_path = Path(storage_path) if storage_path else default_storage_path(workspace)
        self._cache: dict[str, Any] | None = None
        self._cache_dirty = False
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _read(self) -> dict[str, Any]:
        if not self.storage_path.exists():
            return _empty_document()
        try:
            data = json.loads(self.storage_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise KnowledgeStoreError(f"Failed to read knowledge store {self.storage_path}: {e}") from e
        if not isinstance(data, dict):
            raise KnowledgeStoreError(f"Knowledge store {self.storage_path} is not a JSON object")
        if not isinstance(data.get("resources"), dict):
            data["resources"] = {}
        data.setdefault("version", STORE_VERSION)
        return data

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            payload = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
            self.storage_path.write_text(payload, encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            raise KnowledgeStoreError(f"Failed to write knowledge store {self.storage_path}: {e}") from e

    def _load(self) -> dict[str, Any]:
        with self._lock:
            if self._cache is not None and not self._cache_dirty:
                return self._cache
            self._cache = self._read()
            self._cache_dirty = False
            return self._cache

    def _save(self, data: dict[str, Any]) -> None:
        with self._lock:
            self._cache = data
            try:
                self._write(data)
            finally:
                self._cache_dirty = True

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _normalize_batch(
        self, aspects: Iterable[Any] | None, resource_key: str, default_type: str | None
    ) -> list[dict[str, Any]]:
        if not isinstance(aspects, (list, tuple)):
            return []
        normalized = []
        for raw in aspects:
            entry = normalize_aspect(raw, resource_key=resource_key, default_type=default_type)
            if entry:
                normalized.append(entry)
        dropped = len(aspects) - len(normalized)
        if dropped:
            logger.debug(f"Dropped {dropped} aspect(s) without content for {resource_key}")
        return normalized

    def _put_record(
        self,
        data: dict[str, Any],
        resource_key: str,
        resource: str | None,
        statement: str | None,
        aspects: list[dict[str, Any]],
    ) -> None:
        data["resources"][resource_key] = {
            "resource": to_string_or_none(resource),
            "statement": statement or None,
            "savedAt": utc_now_iso(),
            "aspects": aspects,
        }

    def replace_resource(
        self,
        resource: str | None,
        aspects: Iterable[Any] | None,
        context: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Normalize aspects and overwrite whatever was stored for the resource."""
        context = context or {}
        statement = context.get("statement") or ""
        with self._lock:
            data = self._load()
            resource_key = derive_resource_key(resource, statement)
            normalized = self._normalize_batch(aspects, resource_key, context.get("defaultType"))
            self._put_record(data, resource_key, resource, statement, normalized)
            self._save(data)
            logger.info(f"Replaced {resource_key} with {len(normalized)} aspect(s)")
            return copy.deepcopy(normalized)

    def merge_resource(
        self,
        resource: str | None,
        aspects: Iterable[Any] | None,
        context: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Overlay aspects onto the resource's stored aspects by id; others are kept."""
        context = context or {}
        statement = context.get("statement") or ""
        with self._lock:
            data = self._load()
            resource_key = derive_resource_key(resource, statement)
            existing = (data["resources"].get(resource_key) or {}).get("aspects") or []
            index: dict[str, dict[str, Any]] = {entry.get("id"): entry for entry in existing}

            for entry in self._normalize_batch(aspects, resource_key, context.get("defaultType")):
                index[entry["id"]] = {**index.get(entry["id"], {}), **entry}

            merged = list(index.values())
            self._put_record(data, resource_key, resource, statement, merged)
            self._save(data)
            logger.info(f"Merged into {resource_key}: {len(merged)} aspect(s) total")
            return copy.deepcopy(merged)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _records(self) -> Iterable[tuple[str, dict[str, Any]]]:
        for resource_key, record in self._load()["resources"].items():
            if isinstance(record, dict) and isinstance(record.get("aspects"), list):
                yield resource_key, record

    def get_snapshot(self) -> dict[str, Any]:
        """Deep copy of the whole store document."""
        with self._lock:
            return copy.deepcopy(self._load())

    def get_aspects_by_resource(self, resource: str | None, statement: str | None = "") -> list[dict[str, Any]]:
        with self._lock:
            record = self._load()["resources"].get(derive_resource_key(resource, statement))
            if not record or not isinstance(record.get("aspects"), list):
                return []
            return copy.deepcopy(record["aspects"])

    def list_all_aspects(self) -> list[dict[str, Any]]:
        """Every stored aspect annotated with its resourceKey, resource and statement."""
        with self._lock:
            results = []
            for resource_key, record in self._records():
                for aspect in record["aspects"]:
                    results.append({
                        **copy.deepcopy(aspect),
                        "resourceKey": resource_key,
                        "resource": record.get("resource") or None,
                        "statement": record.get("statement") or None,
                    })
            return results

    def get_aspect_by_id(self, aspect_id: str | None) -> dict[str, Any] | None:
        if not aspect_id:
            return None
        with self._lock:
            for _, record in self._records():
                for aspect in record["aspects"]:
                    if aspect.get("id") == aspect_id:
                        return {
                            **copy.deepcopy(aspect),
                            "resource": record.get("resource") or None,
                            "statement": record.get("statement") or None,
                        }
        return None

    def get_aspects_by_ids(self, aspect_ids: Iterable[str] | None) -> list[dict[str, Any]]:
        """Look up several aspects; unknown ids are skipped, order follows the request."""
        if not aspect_ids:
            return []
        with self._lock:
            lookup: dict[str, dict[str, Any]] = {}
            for _, record in self._records():
                for aspect in record["aspects"]:
                    lookup[aspect.get("id")] = {
                        **aspect,
                        "resource": record.get("resource") or None,
                        "statement": record.get("statement") or None,
                    }
            return [copy.deepcopy(lookup[i]) for i in aspect_ids if i in lookup]

    def stats(self) -> dict[str, int]:
        """Count resources, facts and rules."""
        with self._lock:
            counts = {"resources": 0, "facts": 0, "rules": 0}
            for _, record in self._records():
                counts["resources"] += 1
                for aspect in record["aspects"]:
                    counts["rules" if aspect.get("type") == "rule" else "facts"] += 1
            return counts
