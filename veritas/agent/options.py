"""Resolution of enumerated argument options."""

import inspect
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from loguru import logger

from veritas.errors import MissingOptionProviderError

if TYPE_CHECKING:
    from veritas.agent.skill import Skill

OPTIONS_PREFIX = "%"


def normalize_options(options: Any) -> list[dict[str, Any]]:
    """
    Normalize raw option entries into `{value, label}` pairs.

    Strings become their own label, mappings keep an explicit value/label,
    None entries (and mappings whose value is None) are skipped.
    """
    if not isinstance(options, (list, tuple)):
        return []
    normalized = []
    for entry in options:
        if entry is None:
            continue
        if isinstance(entry, str):
            normalized.append({"value": entry, "label": entry})
            continue
        if isinstance(entry, Mapping):
            value = entry["value"] if "value" in entry else dict(entry)
            if value is None:
                continue
            label = entry["label"] if "label" in entry else str(value)
            normalized.append({"value": value, "label": label})
            continue
        normalized.append({"value": entry, "label": str(entry)})
    return normalized


async def _call(fn: Any, *args: Any, **kwargs: Any) -> Any:
    result = fn(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


async def resolve_skill_options(skill: "Skill") -> dict[str, list[dict[str, Any]]]:
    """
    Resolve the option list of every declared argument.

    Enumerators are tried first and never abort the pass; `%provider` types
    must name a provider the skill exposes; anything else is free text.

    Raises:
        MissingOptionProviderError: If a `%provider` type has no provider.
    """
    spec = skill.spec
    result: dict[str, list[dict[str, Any]]] = {}
    for name, definition in spec.arguments.items():
        if definition.enumerator is not None:
            try:
                result[name] = normalize_options(await _call(definition.enumerator))
            except Exception as e:
                logger.warning(f"Failed to call enumerator for '{name}' in {spec.name}: {e}")
                result[name] = []
            continue

        provider_name = definition.provider_name
        if provider_name is not None:
            provider = skill.get_provider(provider_name)
            if provider is None:
                raise MissingOptionProviderError(spec.name, name, provider_name)
            result[name] = normalize_options(await _call(provider, argument=name, spec=definition))
            continue

        result[name] = []
    return result


def option_samples(options: list[dict[str, Any]] | None, limit: int = 5) -> list[str]:
    """Labels of the first few options, for prompts and re-prompts."""
    return [str(option["label"]) for option in (options or [])[:limit]]


def match_option(value: Any, options: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Find the option whose value or label matches, ignoring case."""
    needle = str(value).strip().lower()
    for option in options:
        if str(option["value"]).strip().lower() == needle or str(option["label"]).strip().lower() == needle:
            return option
    return None
