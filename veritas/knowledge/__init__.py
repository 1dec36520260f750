"""Knowledge store and lexical retrieval helpers."""

from veritas.knowledge.store import (
    KnowledgeStore,
    clamp_confidence,
    derive_resource_key,
    normalize_aspect,
    sanitize_tags,
)

__all__ = [
    "KnowledgeStore",
    "clamp_confidence",
    "derive_resource_key",
    "normalize_aspect",
    "sanitize_tags",
]
