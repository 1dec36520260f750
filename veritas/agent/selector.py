"""Choose the skill that best matches a user request."""

import re

from loguru import logger

from veritas.agent.skill import Skill
from veritas.knowledge.similarity import ranking_tokens
from veritas.providers.base import CompletionProvider

NAME_WEIGHT = 2.0
NONE_ANSWER = "none"


def _skill_text(skill: Skill) -> str:
    spec = skill.spec
    parts = [spec.description, spec.human_description, spec.what, spec.why]
    return " ".join(part for part in parts if part)


def _name_words(name: str) -> set[str]:
    return {word for word in re.split(r"[-_\s]+", name.lower()) if len(word) >= 3}


class SkillSelector:
    """
    Ranks skills lexically and optionally lets a completion pick the winner.

    Without a completion provider, the best positively scored skill is used.
    """

    def __init__(self, completion: CompletionProvider | None = None, limit: int = 5):
        self.completion = completion
        self.limit = limit

    def score(self, utterance: str, skill: Skill) -> float:
        query = set(ranking_tokens(utterance))
        if not query:
            return 0.0
        name_hits = len(query & _name_words(skill.name))
        text_hits = len(query & set(ranking_tokens(_skill_text(skill))))
        return name_hits * NAME_WEIGHT + text_hits

    def rank(self, utterance: str, skills: list[Skill], limit: int | None = None) -> list[tuple[Skill, float]]:
        """Skills with a positive score, best first; ties keep registry order."""
        scored = [(skill, self.score(utterance, skill)) for skill in skills]
        ranked = sorted((item for item in scored if item[1] > 0), key=lambda item: -item[1])
        return ranked[: limit or self.limit]

    def _choice_prompt(self, utterance: str, candidates: list[Skill]) -> str:
        lines = [
            "Pick the single skill that best fulfils the user request.",
            "",
            f'Request: "{utterance}"',
            "",
            "Skills:",
        ]
        lines += [f"- {skill.name}: {skill.spec.description}" for skill in candidates]
        lines += [
            "",
            f'Respond with only the skill name, or "{NONE_ANSWER}" if no skill applies.',
        ]
        return "\n".join(lines)

    async def choose(self, utterance: str, skills: list[Skill]) -> Skill | None:
        """
        Select a skill for the utterance, or None when nothing applies.

        Raises:
            CompletionError: If the completion provider fails.
        """
        ranked = self.rank(utterance, skills)
        candidates = [skill for skill, _ in ranked] or list(skills)[: self.limit]
        if not candidates:
            return None

        if self.completion is None:
            return ranked[0][0] if ranked else None

        raw = await self.completion.complete(
            {"intent": "choose-skill", "candidates": [skill.name for skill in candidates]},
            self._choice_prompt(utterance, candidates),
            mode="fast",
        )
        answer = (raw or "").strip().strip("`\"'. ").lower()
        if answer == NONE_ANSWER:
            return None
        for skill in candidates:
            if skill.name.lower() == answer:
                return skill
        logger.warning(f"Unexpected skill choice '{answer}', using the lexical ranking")
        return ranked[0][0] if ranked else None
