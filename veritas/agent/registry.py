"""Skill registry and role directory."""

import importlib
import pkgutil
from collections.abc import Iterable
from dataclasses import dataclass
from types import ModuleType

from loguru import logger

from veritas.agent.skill import ModuleSkill, Skill
from veritas.errors import SkillDefinitionError, SkillNotFoundError


@dataclass(frozen=True)
class Role:
    """A role id (lowercase) and its display label."""
    id: str
    label: str


class RoleDirectory:
    """Roles keyed by lowercase id; the first-seen casing is kept as label."""

    def __init__(self):
        self._roles: dict[str, Role] = {}

    def register(self, roles: Iterable[str]) -> None:
        for role in roles or []:
            if not isinstance(role, str) or not role.strip():
                continue
            label = role.strip()
            self._roles.setdefault(label.lower(), Role(id=label.lower(), label=label))

    def list_roles(self) -> list[Role]:
        """All roles sorted by label."""
        return sorted(self._roles.values(), key=lambda role: role.label.lower())

    def resolve(self, role: str | None) -> Role | None:
        """Match by id or label, ignoring case."""
        needle = role.strip().lower() if isinstance(role, str) else ""
        if not needle:
            return None
        found = self._roles.get(needle)
        if found:
            return found
        for entry in self._roles.values():
            if entry.label.lower() == needle:
                return entry
        return None

    def clear(self) -> None:
        self._roles.clear()

    def __len__(self) -> int:
        return len(self._roles)

    def __contains__(self, role: str) -> bool:
        return self.resolve(role) is not None


class SkillRegistry:
    """Registry of skills plus the roles they declare."""

    def __init__(self):
        self._skills: dict[str, Skill] = {}
        self.roles = RoleDirectory()

    def register(self, skill: Skill) -> None:
        """Register a skill; an existing skill with the same name is replaced."""
        if skill.name in self._skills:
            logger.warning(f"Skill '{skill.name}' registered twice, replacing the earlier one")
        self._skills[skill.name] = skill
        self.roles.register(skill.roles())

    def get(self, name: str) -> Skill | None:
        return self._skills.get(name)

    def require(self, name: str) -> Skill:
        skill = self._skills.get(name)
        if skill is None:
            raise SkillNotFoundError(f"Skill '{name}' not found")
        return skill

    def clear(self) -> None:
        """Drop every skill and role."""
        self._skills.clear()
        self.roles.clear()

    @property
    def skill_names(self) -> list[str]:
        return list(self._skills.keys())

    @property
    def skills(self) -> list[Skill]:
        return list(self._skills.values())

    def skills_for_roles(self, roles: Iterable[str] | None) -> list[Skill]:
        """Skills whose declared roles intersect the given roles, ignoring case."""
        wanted = {r.strip().lower() for r in roles or [] if isinstance(r, str) and r.strip()}
        if not wanted:
            return []
        return [s for s in self._skills.values() if wanted & {r.lower() for r in s.roles()}]

    def discover(self, package: ModuleType | str) -> list[str]:
        """
        Rebuild the registry from the skill modules of a package.

        Modules whose name starts with an underscore are helpers and are not
        considered. Modules that fail to import, lack `specs()`/`action()`,
        or whose declaration is invalid are skipped with a warning.

        Returns:
            Names of the registered skills.
        """
        if isinstance(package, str):
            package = importlib.import_module(package)

        self.clear()
        registered = []
        for info in sorted(pkgutil.iter_modules(package.__path__), key=lambda m: m.name):
            if info.name.startswith("_") or info.ispkg:
                continue
            qualified = f"{package.__name__}.{info.name}"
            try:
                module = importlib.import_module(qualified)
            except Exception as e:
                logger.warning(f"Failed to load skill module {qualified}: {e}")
                continue
            try:
                skill = ModuleSkill.from_module(module)
            except SkillDefinitionError as e:
                logger.warning(f"Skipping {qualified}: {e}")
                continue
            self.register(skill)
            registered.append(skill.name)

        logger.info(f"Discovered {len(registered)} skill(s) in {package.__name__}")
        return registered

    def __len__(self) -> int:
        return len(self._skills)

    def __contains__(self, name: str) -> bool:
        return name in self._skills
