"""Deterministic strategy that needs no completion backend."""

import hashlib
import re

from veritas.io.resources import read_resource_file
from veritas.io.uploads import UploadRegistry
from veritas.knowledge.similarity import tokenize
from veritas.knowledge.store import KnowledgeStore
from veritas.strategies.base import Aspect, Citation, Strategy
from veritas.strategies.parsing import unique_aspects

SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+|\n+")
RULE_MARKERS = re.compile(r"\b(must|shall|should|required|requires|never|always)\b", re.IGNORECASE)
NEGATION = re.compile(r"\b(not|no|never|none|cannot|without)\b|n't\b", re.IGNORECASE)
MIN_SENTENCE_TOKENS = 3
MIN_OVERLAP = 2


def split_sentences(text: str) -> list[str]:
    return [part.strip(" -*\t") for part in SENTENCE_SPLIT.split(text or "") if part.strip(" -*\t")]


class MockStrategy(Strategy):
    """
    Sentence splitting for extraction and token overlap for citations.

    A stored aspect supports a statement when it shares enough tokens and
    the same negation polarity; it challenges it when the polarity differs.
    """

    name = "mock"

    def __init__(self, store: KnowledgeStore, uploads: UploadRegistry | None = None):
        super().__init__(store)
        self.uploads = uploads

    def _sentences_to_aspects(self, text: str, default_type: str) -> list[Aspect]:
        aspects = []
        for sentence in split_sentences(text):
            if len(tokenize(sentence)) < MIN_SENTENCE_TOKENS:
                continue
            digest = hashlib.sha1(sentence.lower().encode("utf-8")).hexdigest()[:12]
            aspect_type = "rule" if default_type == "rule" or RULE_MARKERS.search(sentence) else "fact"
            aspects.append({"id": f"mock-{digest}", "type": aspect_type, "content": sentence})
        return unique_aspects(aspects)

    async def detect_relevant_aspects_from_single_file(
        self, resource: str | None, statement: str = ""
    ) -> list[Aspect]:
        text = read_resource_file(resource, self.uploads) or statement
        return self._sentences_to_aspects(text, "fact")

    async def detect_rules_from_statement(self, statement: str) -> list[Aspect]:
        return self._sentences_to_aspects(statement, "rule")

    def _cite(self, statement: str, decision: str) -> list[Citation]:
        reference = tokenize(statement)
        if not reference:
            return []
        needed = min(MIN_OVERLAP, len(reference))
        negated = bool(NEGATION.search(statement))

        citations = []
        for aspect in self.store.list_all_aspects():
            shared = reference & tokenize(aspect.get("content"))
            if len(shared) < needed:
                continue
            agrees = bool(NEGATION.search(aspect.get("content") or "")) == negated
            if agrees != (decision == "support"):
                continue
            citations.append({
                "fact_id": aspect["id"],
                "type": aspect.get("type"),
                "content": aspect.get("content"),
                "source": aspect.get("source") or aspect.get("resource") or None,
                "explanation": f"Shares terms: {', '.join(sorted(shared))}.",
                "decision": decision,
            })
        return citations

    async def get_evidences_for_statement(self, statement: str) -> list[Citation]:
        return self._cite(statement, "support")

    async def get_challenges_for_statement(self, statement: str) -> list[Citation]:
        return self._cite(statement, "challenge")
