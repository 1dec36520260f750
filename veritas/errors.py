"""Shared error types for veritas.

Definition bugs, validation failures and store I/O problems are raised as
distinct types so each layer can decide whether to skip, re-prompt or abort.
"""


class VeritasError(Exception):
    """Base error for veritas."""


class SkillDefinitionError(VeritasError):
    """A skill declaration is structurally invalid."""


class MissingOptionProviderError(SkillDefinitionError):
    """An argument references a `%provider` the skill does not expose."""

    def __init__(self, skill: str, argument: str, provider: str):
        self.skill = skill
        self.argument = argument
        self.provider = provider
        super().__init__(
            f"Skill '{skill}' is missing options provider '{provider}' for argument '{argument}'."
        )


class SkillNotFoundError(VeritasError):
    """Requested skill isn't registered."""


class ArgumentValidationError(VeritasError):
    """A user-supplied argument value was rejected by its validator."""

    def __init__(self, argument: str, reason: str | None = None):
        self.argument = argument
        self.reason = reason or f"Invalid value for '{argument}'."
        super().__init__(self.reason)


class KnowledgeStoreError(VeritasError):
    """The knowledge store could not be read or written."""


class CompletionError(VeritasError):
    """Completion backend call failed (network/auth/model/etc.)."""


class StrategyUnavailableError(VeritasError):
    """No registered strategy can serve the request."""
