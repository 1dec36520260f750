"""Completion-backed strategy."""

from loguru import logger

from veritas.io.resources import read_resource_file
from veritas.io.uploads import UploadRegistry
from veritas.knowledge.similarity import MAX_CONTEXT_ASPECTS, select_top_aspects
from veritas.knowledge.store import KnowledgeStore
from veritas.providers.base import CompletionProvider
from veritas.strategies.base import Aspect, Citation, Strategy
from veritas.strategies.parsing import map_citations, parse_aspects, parse_citations
from veritas.strategies.prompts import build_citation_prompt, build_extraction_prompt


class LLMStrategy(Strategy):
    """
    Extracts aspects and finds citations through a completion provider.

    Only local files (or registered uploads) are read; URLs are never
    fetched, in which case the statement text is analysed instead.
    """

    name = "simple-llm"

    def __init__(
        self,
        store: KnowledgeStore,
        completion: CompletionProvider,
        uploads: UploadRegistry | None = None,
        max_context_aspects: int = MAX_CONTEXT_ASPECTS,
    ):
        super().__init__(store)
        self.completion = completion
        self.uploads = uploads
        self.max_context_aspects = max_context_aspects

    async def _extract(
        self,
        resource: str | None,
        statement: str,
        text: str | None,
        default_type: str,
    ) -> list[Aspect]:
        source_text = text if isinstance(text, str) else ""
        body = (source_text or statement or "").strip()
        if not body:
            return []

        prompt = build_extraction_prompt(resource, statement, default_type)
        markdown = await self.completion.complete(
            {"intent": "extract-aspects", "resource": resource, "statement": statement},
            prompt,
            history=[{"role": "user", "content": source_text or statement}],
            mode="precision",
        )
        aspects = parse_aspects(markdown, default_type)
        logger.debug(f"Extracted {len(aspects)} aspect(s) from {resource or 'statement'}")
        return aspects

    async def detect_relevant_aspects_from_single_file(
        self, resource: str | None, statement: str = ""
    ) -> list[Aspect]:
        text = read_resource_file(resource, self.uploads)
        return await self._extract(resource, statement, text, "fact")

    async def detect_rules_from_statement(self, statement: str) -> list[Aspect]:
        return await self._extract(None, statement, statement, "rule")

    async def _cite(self, statement: str, decision: str) -> list[Citation]:
        all_aspects = self.store.list_all_aspects()
        if not all_aspects:
            return []
        context = select_top_aspects(statement, all_aspects, self.max_context_aspects)
        if not context:
            context = all_aspects[: self.max_context_aspects]

        prompt = build_citation_prompt(statement, context, decision)
        markdown = await self.completion.complete(
            {
                "intent": "find-challenges" if decision == "challenge" else "find-support",
                "statement": statement,
            },
            prompt,
            mode="precision",
        )
        return map_citations(parse_citations(markdown), context, all_aspects, decision)

    async def get_evidences_for_statement(self, statement: str) -> list[Citation]:
        return await self._cite(statement, "support")

    async def get_challenges_for_statement(self, statement: str) -> list[Citation]:
        return await self._cite(statement, "challenge")
