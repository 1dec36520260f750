"""Built-in skills, discovered by `SkillRegistry.discover("veritas.skills")`."""
