"""Skill contract: normalized specifications, results and the Skill interface."""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType, ModuleType
from typing import TYPE_CHECKING, Any

from veritas.errors import SkillDefinitionError

if TYPE_CHECKING:
    from veritas.agent.context import SkillContext

_ARGUMENT_FIELDS = {
    "description": ("description",),
    "type": ("type",),
    "required": ("required",),
    "validator": ("validator",),
    "enumerator": ("enumerator",),
    "llm_hint": ("llm_hint", "llmHint"),
    "multiline": ("multiline",),
    "default": ("default",),
}
_KNOWN_ARGUMENT_KEYS = {key for keys in _ARGUMENT_FIELDS.values() for key in keys}

_SPEC_KEYS = {
    "name", "description", "human_description", "humanDescription", "what", "why",
    "arguments", "required_arguments", "requiredArguments", "need_confirmation",
    "needConfirmation",
}


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass(frozen=True)
class ArgumentDefinition:
    """One declared skill argument."""
    name: str
    description: str = ""
    type: str | None = None
    required: bool = False
    validator: str | Callable[..., Any] | None = None
    enumerator: Callable[[], Any] | None = None
    llm_hint: str | None = None
    multiline: bool = False
    default: Any = None
    extras: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, name: str, raw: Any) -> "ArgumentDefinition":
        """Build from a declaration; scalars become the description."""
        if not isinstance(raw, Mapping):
            return cls(name=name, description=str(raw))
        values = {attr: _pick(raw, *keys) for attr, keys in _ARGUMENT_FIELDS.items()}
        description = values["description"]
        return cls(
            name=name,
            description=str(description) if description is not None else "",
            type=values["type"] if isinstance(values["type"], str) else None,
            required=bool(values["required"]),
            validator=values["validator"],
            enumerator=values["enumerator"] if callable(values["enumerator"]) else None,
            llm_hint=_text(values["llm_hint"]),
            multiline=bool(values["multiline"]),
            default=values["default"],
            extras=MappingProxyType({k: v for k, v in raw.items() if k not in _KNOWN_ARGUMENT_KEYS}),
        )

    @property
    def provider_name(self) -> str | None:
        """Name of the option provider for `%provider` typed arguments."""
        if self.type and self.type.startswith("%"):
            return self.type[1:]
        return None


@dataclass(frozen=True)
class SkillSpecification:
    """Canonical, immutable form of a skill's declared contract."""
    name: str
    description: str
    arguments: Mapping[str, ArgumentDefinition] = field(default_factory=dict)
    required_arguments: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()
    human_description: str | None = None
    what: str | None = None
    why: str | None = None
    need_confirmation: bool = False
    extras: Mapping[str, Any] = field(default_factory=dict)

    @property
    def optional_arguments(self) -> list[str]:
        return [name for name in self.arguments if name not in self.required_arguments]

    def get_argument(self, name: str) -> ArgumentDefinition | None:
        return self.arguments.get(name)

    def match_argument(self, name: str) -> str | None:
        """Case-insensitive lookup of a declared argument name."""
        if name in self.arguments:
            return name
        lowered = name.strip().lower()
        for declared in self.arguments:
            if declared.lower() == lowered:
                return declared
        return None


def normalize_skill_spec(raw: Any, module_name: str, roles: tuple[str, ...] = ()) -> SkillSpecification:
    """
    Convert a raw skill declaration into a SkillSpecification.

    Args:
        raw: The mapping returned by a skill's `specs()`.
        module_name: Used for error messages and as the fallback name.
        roles: Roles already resolved for the skill.

    Raises:
        SkillDefinitionError: If the declaration is not a mapping.
    """
    if not isinstance(raw, Mapping):
        raise SkillDefinitionError(f"Skill specs from {module_name} must be a mapping.")

    name = _text(raw.get("name")) or module_name
    human_description = _text(_pick(raw, "human_description", "humanDescription"))
    what = _text(raw.get("what"))
    description = (
        _text(raw.get("description"))
        or human_description
        or what
        or f"Skill {_text(raw.get('name')) or module_name}"
    )

    arguments: dict[str, ArgumentDefinition] = {}
    raw_arguments = raw.get("arguments")
    if isinstance(raw_arguments, Mapping):
        for key, definition in raw_arguments.items():
            arg_name = key.strip() if isinstance(key, str) else ""
            if arg_name:
                arguments[arg_name] = ArgumentDefinition.from_raw(arg_name, definition)

    raw_required = _pick(raw, "required_arguments", "requiredArguments")
    required: tuple[str, ...] = ()
    if isinstance(raw_required, (list, tuple)):
        required = tuple(v.strip() for v in raw_required if isinstance(v, str) and v.strip())

    return SkillSpecification(
        name=name,
        description=description,
        arguments=MappingProxyType(arguments),
        required_arguments=required,
        roles=tuple(roles),
        human_description=human_description,
        what=what,
        why=_text(raw.get("why")),
        need_confirmation=bool(_pick(raw, "need_confirmation", "needConfirmation")),
        extras=MappingProxyType({k: v for k, v in raw.items() if k not in _SPEC_KEYS}),
    )


def normalize_roles(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    return tuple(r.strip() for r in raw if isinstance(r, str) and r.strip())


def normalize_aliases(raw: Any) -> dict[str, str]:
    """
    Build a lowercase alias -> canonical argument map.

    Accepts `{"alias": "canonical"}` or `{"canonical": ["alias", ...]}`.
    """
    aliases: dict[str, str] = {}
    if not isinstance(raw, Mapping):
        return aliases
    for key, value in raw.items():
        if not isinstance(key, str) or not key.strip():
            continue
        if isinstance(value, str) and value.strip():
            aliases[key.strip().lower()] = value.strip()
        elif isinstance(value, (list, tuple)):
            for alias in value:
                if isinstance(alias, str) and alias.strip():
                    aliases[alias.strip().lower()] = key.strip()
    return aliases


@dataclass
class SkillResult:
    """Outcome of a skill action."""
    success: bool
    result: Any = None
    message: str | None = None

    @classmethod
    def from_value(cls, value: Any) -> "SkillResult":
        if isinstance(value, SkillResult):
            return value
        if value is None:
            return cls(success=True)
        if isinstance(value, Mapping):
            return cls(
                success=bool(value.get("success", True)),
                result=value.get("result"),
                message=value.get("message") or value.get("reason"),
            )
        return cls(success=True, result=value)


class Skill(ABC):
    """
    Abstract base class for skills.

    A skill declares its contract through `spec` and performs its work in
    `action`, receiving services only through the passed context.
    """

    @property
    @abstractmethod
    def spec(self) -> SkillSpecification:
        """Normalized specification."""
        pass

    @abstractmethod
    async def action(self, args: dict[str, Any], ctx: "SkillContext") -> SkillResult:
        """Run the skill with resolved arguments."""
        pass

    @property
    def name(self) -> str:
        return self.spec.name

    def roles(self) -> list[str]:
        return list(self.spec.roles)

    @property
    def argument_aliases(self) -> dict[str, str]:
        return {}

    def get_provider(self, name: str) -> Callable[..., Any] | None:
        """Option provider referenced by a `%name` argument type."""
        provider = getattr(self, name, None)
        return provider if callable(provider) else None

    async def get_options(self) -> dict[str, list[dict[str, Any]]]:
        from veritas.agent.options import resolve_skill_options

        return await resolve_skill_options(self)

    def resolve_alias(self, name: str) -> str:
        """Map a surface name to its canonical argument, falling back to the name."""
        return resolve_argument_name(self.spec, self.argument_aliases, name)


def resolve_argument_name(spec: SkillSpecification, aliases: Mapping[str, str] | None, name: str) -> str:
    """Resolve `name` through the alias map, then the declared arguments ignoring case."""
    canonical = (aliases or {}).get(name.strip().lower())
    if canonical:
        return canonical
    return spec.match_argument(name) or name


class ModuleSkill(Skill):
    """Skill backed by a module exposing `specs()`, `action()` and optional `roles()`."""

    def __init__(self, module: ModuleType, spec: SkillSpecification, aliases: dict[str, str]):
        self.module = module
        self._spec = spec
        self._aliases = aliases

    @classmethod
    def from_module(cls, module: ModuleType) -> "ModuleSkill":
        """
        Adapt a skill module.

        Raises:
            SkillDefinitionError: If `specs()` or `action()` is missing, if
                `specs()`, `roles()` or `argument_aliases()` raises, or the
                declaration cannot be normalized.
        """
        module_name = module.__name__.rsplit(".", 1)[-1]
        specs = getattr(module, "specs", None)
        action = getattr(module, "action", None)
        if not callable(specs) or not callable(action):
            raise SkillDefinitionError(f"{module_name}: missing specs() or action().")

        roles_fn = getattr(module, "roles", None)
        try:
            roles = normalize_roles(roles_fn()) if callable(roles_fn) else ()
        except Exception as e:
            raise SkillDefinitionError(f"{module_name}: roles() failed: {e}") from e

        try:
            raw = specs()
        except Exception as e:
            raise SkillDefinitionError(f"{module_name}: specs() failed: {e}") from e
        spec = normalize_skill_spec(raw, module_name, roles)

        raw_aliases = getattr(module, "argument_aliases", None)
        try:
            if callable(raw_aliases):
                raw_aliases = raw_aliases()
            aliases = normalize_aliases(raw_aliases)
        except Exception as e:
            raise SkillDefinitionError(f"{module_name}: argument_aliases() failed: {e}") from e
        return cls(module, spec, aliases)

    @property
    def spec(self) -> SkillSpecification:
        return self._spec

    @property
    def argument_aliases(self) -> dict[str, str]:
        return self._aliases

    def get_provider(self, name: str) -> Callable[..., Any] | None:
        provider = getattr(self.module, name, None)
        return provider if callable(provider) else None

    async def action(self, args: dict[str, Any], ctx: "SkillContext") -> SkillResult:
        outcome = self.module.action(args, ctx)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return SkillResult.from_value(outcome)
