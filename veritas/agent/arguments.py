"""Argument extraction: prompt building, response parsing and validation."""

import json
import re
from collections.abc import Mapping
from typing import Any

from loguru import logger

from veritas.agent.options import match_option, option_samples
from veritas.agent.skill import SkillSpecification, resolve_argument_name
from veritas.agent.validators import ValidatorRegistry, default_validators
from veritas.providers.base import CompletionProvider

KEY_VALUE_LINE = re.compile(r"^\s*(?:[-*•]\s+)?`?([A-Za-z_][\w\- ]*?)`?\s*[:=]\s*(.*?)\s*$")
QUOTED_VALUE = re.compile(r"\"([^\"]+)\"|'([^']+)'|“([^”]+)”")
OPTION_SAMPLE_LIMIT = 5


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def parse_markdown_key_values(markdown: str | None) -> dict[str, str]:
    """Collect `- key: value` lines; later keys overwrite earlier ones."""
    values: dict[str, str] = {}
    for line in (markdown or "").splitlines():
        match = KEY_VALUE_LINE.match(line)
        if not match:
            continue
        key = match.group(1).strip()
        value = match.group(2).strip().strip("`").strip()
        if key:
            values[key] = value
    return values


class ArgumentExtractor:
    """
    Fills skill arguments from user utterances.

    The completion provider is optional: without one, only the raw utterance
    heuristics in `extract` apply.
    """

    def __init__(
        self,
        completion: CompletionProvider | None = None,
        validators: ValidatorRegistry | None = None,
    ):
        self.completion = completion
        self.validators = validators or default_validators()

    @staticmethod
    def missing_required(spec: SkillSpecification, state: Mapping[str, Any]) -> list[str]:
        return [name for name in spec.required_arguments if not _has_value(state.get(name))]

    @staticmethod
    def missing_optional(spec: SkillSpecification, state: Mapping[str, Any]) -> list[str]:
        return [name for name in spec.optional_arguments if not _has_value(state.get(name))]

    def _argument_lines(
        self,
        spec: SkillSpecification,
        names: list[str],
        options: Mapping[str, list[dict[str, Any]]],
    ) -> list[str]:
        lines = []
        for name in names:
            definition = spec.get_argument(name)
            description = definition.description if definition else ""
            if definition and definition.llm_hint:
                description = f"{description} ({definition.llm_hint})" if description else definition.llm_hint
            samples = option_samples(options.get(name), OPTION_SAMPLE_LIMIT)
            sample_text = f" (options: {', '.join(samples)})" if samples else ""
            lines.append(f"  • {name}: {description}{sample_text}")
        return lines

    def build_prompt(
        self,
        spec: SkillSpecification,
        missing_required: list[str],
        missing_optional: list[str],
        current_args: Mapping[str, Any],
        utterance: str,
        options: Mapping[str, list[dict[str, Any]]] | None = None,
        task_description: str = "",
    ) -> str:
        """Markdown prompt asking the model for `- name: value` bullets."""
        options = options or {}
        purpose = spec.human_description or spec.description

        lines = ["# Extract Argument Values", "", "## Task Context", f"Skill: {spec.name}"]
        if purpose:
            lines.append(f"Purpose: {purpose}")
        if task_description:
            lines.append(f'Original request: "{task_description}"')
        lines += [
            "",
            "## Current State",
            f"Arguments: {json.dumps(dict(current_args), indent=2, ensure_ascii=False, default=str)}",
            "",
        ]

        if missing_required:
            lines.append("## Required arguments:")
            lines += self._argument_lines(spec, missing_required, options)
            lines.append("")
        if missing_optional:
            lines.append("## Optional arguments:")
            lines += self._argument_lines(spec, missing_optional, options)
            lines.append("")

        lines += [
            "## Instructions",
            "1. Extract ONLY values explicitly stated by the user",
            "2. Output format: Markdown bullet list `- argument_name: value`",
            "3. Use argument names exactly as shown above",
            '4. DO NOT invent, guess, or use placeholder values like "your_value" or "value1"',
            "5. If a value is not explicitly mentioned, DO NOT include it in the response",
            "6. If no changes are needed, reply with `- result: none`",
            "7. Take values from the user message as-is (preserve formatting)",
        ]

        if missing_required:
            lines += ["", "## Format Example", "Extract:"]
            lines += [f"  - {name}: <value_from_user>" for name in missing_required]

        lines += [
            "",
            "## Critical Rules",
            "- NEVER use placeholders like \"your_name\", \"value1\", \"TBD\"",
            "- NEVER include command keywords (validate, audit, check) as argument values",
            "- If unsure, omit the argument (better to prompt than to guess wrong)",
            "",
            "## Parse This User Message",
            f'"{utterance}"',
        ]
        return "\n".join(lines)

    def parse_response(
        self,
        markdown: str | None,
        spec: SkillSpecification,
        aliases: Mapping[str, str] | None = None,
    ) -> dict[str, str]:
        """
        Turn the model's bullets into argument updates.

        `result: none` and empty values are dropped. Keys are matched to
        declared arguments through aliases, then case-insensitively; an
        unmatched key is kept as given.
        """
        updates: dict[str, str] = {}
        for key, value in parse_markdown_key_values(markdown).items():
            if not value:
                continue
            if key.lower() == "result" and value.lower() == "none":
                continue
            updates[resolve_argument_name(spec, aliases, key)] = value
        return updates

    def _heuristic(self, spec: SkillSpecification, state: Mapping[str, Any], utterance: str) -> dict[str, str]:
        missing = self.missing_required(spec, state)
        if len(missing) != 1:
            return {}
        quoted = QUOTED_VALUE.search(utterance or "")
        if not quoted:
            return {}
        value = next(group for group in quoted.groups() if group)
        return {missing[0]: value.strip()}

    async def extract(
        self,
        spec: SkillSpecification,
        state: Mapping[str, Any],
        utterance: str,
        options: Mapping[str, list[dict[str, Any]]] | None = None,
        task_description: str = "",
        aliases: Mapping[str, str] | None = None,
    ) -> dict[str, str]:
        """
        Extract argument updates from an utterance.

        Uses the completion provider when one is configured; otherwise a
        single quoted value fills the one missing required argument.

        Raises:
            CompletionError: If the completion provider fails.
        """
        if self.completion is None:
            return self._heuristic(spec, state, utterance)

        prompt = self.build_prompt(
            spec,
            self.missing_required(spec, state),
            self.missing_optional(spec, state),
            state,
            utterance,
            options,
            task_description,
        )
        history = []
        if task_description:
            history.append({"role": "system", "content": f"Initial context: {task_description}"})
        history.append({"role": "user", "content": utterance})

        raw = await self.completion.complete(
            {"intent": "skill-argument-extraction", "skillName": spec.name},
            prompt,
            history=history,
            mode="fast",
        )
        updates = self.parse_response(raw, spec, aliases)
        logger.debug(f"Extracted arguments for {spec.name}: {sorted(updates)}")
        return updates

    def validate(
        self,
        spec: SkillSpecification,
        updates: Mapping[str, Any],
        state: Mapping[str, Any] | None = None,
        options: Mapping[str, list[dict[str, Any]]] | None = None,
    ) -> tuple[dict[str, Any], dict[str, str]]:
        """
        Check candidate values against options and validators.

        Enumerated arguments accept only a known option (the option value is
        stored). Validators see the value and the full argument state, and a
        validator's `value` replaces the raw input.

        Returns:
            (accepted, rejections) where rejections maps names to reasons.
        """
        options = options or {}
        merged = {**(state or {}), **updates}
        accepted: dict[str, Any] = {}
        rejections: dict[str, str] = {}

        for name, value in updates.items():
            definition = spec.get_argument(name)
            if definition is None:
                continue

            candidates = options.get(name) or []
            if candidates:
                option = match_option(value, candidates)
                if option is None:
                    samples = ", ".join(option_samples(candidates, OPTION_SAMPLE_LIMIT))
                    rejections[name] = f"'{value}' is not one of the available options ({samples})."
                    continue
                value = option["value"]

            result = self.validators.validate(definition.validator, value, {**merged, name: value})
            if not result.valid:
                rejections[name] = result.reason or f"Invalid value for {name}."
                continue
            accepted[name] = result.value
        return accepted, rejections
