"""Markdown help for the skills a user can run."""

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

from veritas.agent.registry import Role
from veritas.agent.skill import Skill

if TYPE_CHECKING:
    from veritas.agent.context import User

AUTH_HINT = "Authenticate with `authenticate <name> as <role>` before issuing tasks."

EXAMPLE_PROMPTS: dict[str, list[str]] = {
    "upload-rules": [
        "Upload the latest compliance rules and related facts from audit_rules.json",
        "Add these new safety policies and evidence to the knowledge base",
    ],
    "rank-statements": [
        "Rank the five most relevant knowledge base statements for the Q3 security report",
        "Given this incident summary, list the top 3 applicable policies",
    ],
    "audit-statement": [
        'Audit the claim "All vendors completed security training last month"',
        'Check if the statement "Backups run every 4 hours" is supported',
    ],
    "challenge-statement": [
        'Find evidence that disproves "No production outages occurred in May"',
        'Challenge the statement "We operate solely in the EU"',
    ],
    "validate-statement": [
        'Validate the statement "Incident response plans were updated in 2024"',
        'Find supporting evidence for "Access reviews happen quarterly"',
    ],
    "audit-document": [
        "Audit this policy PDF for supported and contradicted statements",
        "Provide a support vs contradiction report for the attached compliance memo",
    ],
    "challenge-document": [
        "List the facts that conflict with this quarterly report",
        "Show contradictions between the knowledge base and this onboarding guide",
    ],
    "validate-document": [
        "Find the facts that back up this risk assessment",
        "Highlight the evidence that supports this draft policy",
    ],
    "show-help": [
        "What can Veritas help me with?",
        "Show the available knowledge base operations",
    ],
}


def extract_friendly_summary(skill: Skill) -> str:
    spec = skill.spec
    for candidate in (spec.human_description, spec.description, spec.what, spec.why):
        if candidate and candidate.strip():
            return re.sub(r"\s{2,}", " ", candidate.strip())
    return f"Ask the assistant to {re.sub(r'[-_]+', ' ', spec.name)}".strip()


def generate_example_prompts(skill: Skill) -> list[str]:
    name = skill.name.lower()
    for key, examples in EXAMPLE_PROMPTS.items():
        if key in name:
            return list(examples)
    fallback = skill.spec.human_description or skill.spec.description
    return [fallback] if fallback else []


def format_role_list(roles: Iterable[Role]) -> str:
    return ", ".join(role.label.strip() for role in roles if role.label and role.label.strip())


def authentication_help(roles: Iterable[Role]) -> str:
    listed = format_role_list(roles)
    return f"{AUTH_HINT}\nKnown roles: {listed}." if listed else AUTH_HINT


def _matches(skill: Skill, query: str) -> bool:
    return query in skill.name.lower() or query in (skill.spec.description or "").lower()


def render_available_actions(skills: Iterable[Skill], user: "User | None", query: str = "") -> str:
    """
    Render the actions available to a user as markdown.

    Args:
        skills: Skills already filtered to the user's roles.
        user: The authenticated user, if any.
        query: Optional case-insensitive filter on name and description.
    """
    if user is None or not user.roles:
        return 'Authenticate with "authenticate <name> as <role>" to see available actions.'

    needle = (query or "").strip().lower()
    selected = [skill for skill in skills if not needle or _matches(skill, needle)]
    if not selected:
        if needle:
            return f'I didn\'t find anything for "{query.strip()}" in your available actions.'
        return "I don't have any ready-made tasks for your roles yet."

    heading = f'# Matching Actions for "{query.strip()}"' if needle else "# Available Actions"
    lines = [heading, "", f"**Your roles:** {', '.join(user.roles)}", ""]

    for skill in selected:
        spec = skill.spec
        lines += [f"## {extract_friendly_summary(skill)}", ""]
        if spec.why:
            lines += [f"**Why:** {spec.why}", ""]
        if spec.required_arguments:
            required = []
            for name in spec.required_arguments:
                definition = spec.get_argument(name)
                required.append(f"`{name}` ({(definition.description if definition else '') or name})")
            lines += [f"**Required:** {', '.join(required)}", ""]
        examples = generate_example_prompts(skill)
        if examples:
            lines.append("**Examples:**")
            lines += [f"- {example}" for example in examples]
            lines.append("")
        lines += ["---", ""]

    if not needle:
        lines.append("**Tip:** Just describe what you want to do in natural language!")
    return "\n".join(lines).rstrip() + "\n"
