"""Agent core: skills, registry, argument extraction and the request loop."""

from veritas.agent.arguments import ArgumentExtractor
from veritas.agent.audit import AuditLog
from veritas.agent.context import SkillContext, User
from veritas.agent.loop import AgentReply, AgentShell
from veritas.agent.registry import Role, RoleDirectory, SkillRegistry
from veritas.agent.selector import SkillSelector
from veritas.agent.skill import ModuleSkill, Skill, SkillResult, SkillSpecification

__all__ = [
    "ArgumentExtractor",
    "AuditLog",
    "SkillContext",
    "User",
    "AgentReply",
    "AgentShell",
    "Role",
    "RoleDirectory",
    "SkillRegistry",
    "SkillSelector",
    "ModuleSkill",
    "Skill",
    "SkillResult",
    "SkillSpecification",
]
