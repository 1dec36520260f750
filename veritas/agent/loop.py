"""Agent shell: the per-utterance request loop."""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from veritas.agent.arguments import ArgumentExtractor
from veritas.agent.context import SkillContext, User
from veritas.agent.help import authentication_help, format_role_list
from veritas.agent.options import option_samples
from veritas.agent.registry import SkillRegistry
from veritas.agent.selector import SkillSelector
from veritas.agent.skill import Skill, SkillResult
from veritas.errors import ArgumentValidationError, CompletionError, SkillDefinitionError, VeritasError

EXIT_COMMANDS = {"exit", "quit"}
CONFIRM_ANSWERS = {"yes", "y", "confirm", "ok", "proceed"}
VALIDATION_MARKERS = ("must be", "required", "invalid", "cannot", "should be")
VALIDATION_TIP = 'Tip: You can try again with corrected values, or type "cancel" to start over.'


@dataclass
class AgentReply:
    """What the shell answers to one utterance."""
    text: str
    skill: str | None = None
    result: SkillResult | None = None
    pending: bool = False
    exit: bool = False


@dataclass
class PendingInvocation:
    """A selected skill still waiting for arguments or confirmation."""
    skill: Skill
    task: str
    args: dict[str, Any] = field(default_factory=dict)
    options: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    prompted: str | None = None
    confirming: bool = False


def parse_authentication_command(value: str | None) -> tuple[str, str] | None:
    """Parse `authenticate <name> as <role>` into (name, role)."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed.lower().startswith("authenticate "):
        return None
    remainder = trimmed[len("authenticate "):]
    marker = remainder.lower().rfind(" as ")
    if marker == -1:
        return None
    username = remainder[:marker].strip()
    role = remainder[marker + 4:].strip()
    if not username or not role:
        return None
    return username, role


def describe_error(skill_name: str, exc: BaseException) -> str:
    """User-facing text for a failed skill run."""
    message = str(exc)
    lower = message.lower()
    if "status 404" in lower or "not found" in lower:
        return f"I couldn't find what was needed to finish '{skill_name}'. Please double-check and try again."
    if any(marker in lower for marker in ("status 401", "status 403", "unauthorized")):
        return "Your account doesn't have permission to do that. Ask a System Administrator if you need access."
    if "status 500" in lower:
        return "The backend service returned an internal error. Please try again in a moment."
    text = f"I ran into a problem with '{skill_name}': {message or 'unexpected error.'}"
    if any(marker in lower for marker in VALIDATION_MARKERS):
        text += f"\n{VALIDATION_TIP}"
    return text


def render_result(result: SkillResult) -> str:
    if result.message:
        return result.message
    payload = result.result
    if isinstance(payload, Mapping) and isinstance(payload.get("report"), str):
        return payload["report"]
    if isinstance(payload, str):
        return payload
    if payload is None:
        return "Done." if result.success else "The action did not complete."
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


class AgentShell:
    """
    Routes user utterances to skills.

    Handles the session commands (exit, cancel, logout, authenticate),
    selects a skill for anything else, fills its arguments across turns and
    runs it with a request-bound SkillContext.
    """

    def __init__(
        self,
        registry: SkillRegistry,
        context: SkillContext,
        extractor: ArgumentExtractor | None = None,
        selector: SkillSelector | None = None,
        user: User | None = None,
    ):
        self.registry = registry
        self.context = context
        self.extractor = extractor or ArgumentExtractor(context.completion)
        self.selector = selector or SkillSelector(context.completion)
        self.user = user
        self.pending: PendingInvocation | None = None
        if self.context.registry is None:
            self.context.registry = registry

    @property
    def audit(self):
        return self.context.audit

    async def handle(self, utterance: str) -> AgentReply:
        """Process one utterance to completion."""
        text = (utterance or "").strip()
        if not text:
            return AgentReply("")
        lower = text.lower()

        if lower in EXIT_COMMANDS:
            return AgentReply("Exiting.", exit=True)
        if lower == "cancel":
            return self._cancel()
        if lower == "logout":
            return self._logout()

        auth = parse_authentication_command(text)
        if auth:
            return self._authenticate(*auth)

        if self.user is None:
            return AgentReply(authentication_help(self.registry.roles.list_roles()))

        if self.pending is not None:
            return await self._continue(text)
        return await self._start(text)

    def _cancel(self) -> AgentReply:
        pending = self.pending
        if pending is None:
            return AgentReply("Okay, ready for your next request.")
        self.pending = None
        if self.audit:
            self.audit.log_cancellation(self.user, pending.task, pending.skill.name, pending.args)
        return AgentReply("Okay, cancelled. Nothing was changed.", skill=pending.skill.name)

    def _logout(self) -> AgentReply:
        if self.user is None:
            return AgentReply("No user is currently authenticated.")
        self.user = None
        self.pending = None
        help_text = authentication_help(self.registry.roles.list_roles())
        return AgentReply(f"Authentication cleared.\n{help_text}")

    def _authenticate(self, username: str, role_name: str) -> AgentReply:
        roles = self.registry.roles.list_roles()
        role = self.registry.roles.resolve(role_name)
        if role is None:
            listed = format_role_list(roles)
            if listed:
                return AgentReply(f"Unknown role '{role_name}'. Known roles: {listed}.")
            return AgentReply(f"Unknown role '{role_name}'. No roles are currently registered.")
        self.user = User(username=username, roles=(role.label,))
        self.pending = None
        logger.info(f"Authenticated {username} as {role.label}")
        return AgentReply(f"Authenticated as {username} ({role.label}).")

    async def _start(self, task: str) -> AgentReply:
        skills = self.registry.skills_for_roles(self.user.roles)
        try:
            skill = await self.selector.choose(task, skills)
        except VeritasError as e:
            logger.warning(f"Skill selection failed: {e}")
            if self.audit:
                self.audit.log_no_match(self.user, task, "skill_ranking_error")
            return AgentReply("I'm not sure how to help with that. Could you rephrase or try something else?")

        if skill is None:
            if self.audit:
                self.audit.log_no_match(self.user, task, "no_matching_skill")
            return AgentReply("No matching skill found for that request.")

        if self.audit:
            ranked = [s.name for s, _ in self.selector.rank(task, skills)]
            self.audit.log_discovery(self.user, task, skill.name, ranked)
        logger.debug(f"Using skill '{skill.name}'")

        self.context.uploads.register_from_task(task)
        try:
            options = await skill.get_options()
        except SkillDefinitionError as e:
            return AgentReply(str(e), skill=skill.name)

        args = {
            name: definition.default
            for name, definition in skill.spec.arguments.items()
            if definition.default is not None
        }
        pending = PendingInvocation(skill=skill, task=task, args=args, options=options)
        return await self._collect(pending, task)

    async def _continue(self, text: str) -> AgentReply:
        pending = self.pending
        if pending.confirming:
            if text.lower() in CONFIRM_ANSWERS:
                self.pending = None
                return await self._run(pending)
            return self._cancel()
        return await self._collect(pending, text, prompted=pending.prompted)

    async def _collect(self, pending: PendingInvocation, utterance: str, prompted: str | None = None) -> AgentReply:
        spec = pending.skill.spec
        try:
            updates = await self.extractor.extract(
                spec,
                pending.args,
                utterance,
                pending.options,
                pending.task,
                pending.skill.argument_aliases,
            )
        except CompletionError as e:
            self.pending = None
            return AgentReply(describe_error(spec.name, e), skill=spec.name)

        if prompted and prompted not in updates:
            updates[prompted] = utterance
        try:
            accepted, rejections = self.extractor.validate(spec, updates, pending.args, pending.options)
        except SkillDefinitionError as e:
            self.pending = None
            return AgentReply(str(e), skill=spec.name)
        pending.args.update(accepted)

        missing = self.extractor.missing_required(spec, pending.args)
        if rejections or missing:
            name = next(iter(rejections), None) or missing[0]
            pending.prompted = name
            self.pending = pending
            return AgentReply(self._prompt_for(pending, name, rejections.get(name)), skill=spec.name, pending=True)

        if spec.need_confirmation:
            pending.confirming = True
            self.pending = pending
            summary = ", ".join(f"{k}={v}" for k, v in pending.args.items())
            return AgentReply(
                f"About to run '{spec.name}' with {summary or 'no arguments'}. Reply \"yes\" to continue or \"cancel\".",
                skill=spec.name,
                pending=True,
            )

        self.pending = None
        return await self._run(pending)

    def _prompt_for(self, pending: PendingInvocation, name: str, reason: str | None) -> str:
        definition = pending.skill.spec.get_argument(name)
        lines = []
        if reason:
            lines.append(f"{name}: {reason}")
        description = definition.description if definition and definition.description else name
        lines.append(f"Please provide {name} ({description}).")
        if definition and definition.llm_hint:
            lines.append(f"Hint: {definition.llm_hint}")
        samples = option_samples(pending.options.get(name))
        if samples:
            lines.append(f"Options: {', '.join(samples)}")
        lines.append('Type "cancel" to stop.')
        return "\n".join(lines)

    async def _run(self, pending: PendingInvocation) -> AgentReply:
        skill = pending.skill
        ctx = self.context.for_request(self.user, pending.task)
        try:
            result = await skill.action(dict(pending.args), ctx)
        except ArgumentValidationError as e:
            if skill.spec.get_argument(e.argument) is None:
                return AgentReply(describe_error(skill.name, e), skill=skill.name)
            pending.args.pop(e.argument, None)
            pending.prompted = e.argument
            pending.confirming = False
            self.pending = pending
            return AgentReply(self._prompt_for(pending, e.argument, e.reason), skill=skill.name, pending=True)
        except Exception as e:
            logger.error(f"Skill '{skill.name}' failed: {e}")
            if self.audit:
                self.audit.log_execution(self.user, pending.task, skill.name, pending.args, False, {"error": str(e)})
            return AgentReply(describe_error(skill.name, e), skill=skill.name)

        if self.audit:
            self.audit.log_execution(
                self.user, pending.task, skill.name, pending.args, result.success, result.result
            )
        return AgentReply(render_result(result), skill=skill.name, result=result)
