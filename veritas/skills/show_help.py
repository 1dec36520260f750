"""List the actions the current user can run."""

from veritas.agent.help import render_available_actions


def specs():
    return {
        "name": "show-help",
        "needConfirmation": False,
        "description": (
            "Show, list, or display the actions Veritas can perform. "
            "View available knowledge base operations and their required inputs."
        ),
        "why": "Gives users quick visibility into the skills that are available for their roles.",
        "what": (
            "Displays available actions with short descriptions and example prompts, "
            "optionally filtered by a search term."
        ),
        "humanDescription": "List the Veritas capabilities you can run.",
        "arguments": {
            "query": {
                "type": "string",
                "description": 'Optional keyword to filter actions (e.g. "audit", "upload").',
            },
        },
        "requiredArguments": [],
    }


def roles():
    return ["sysAdmin", "Analyst", "Auditor", "Reviewer", "KnowledgeAdmin"]


async def action(args, ctx):
    user = ctx.user
    if user is None or not user.roles:
        return {"success": False, "message": "Please authenticate to view the available actions."}
    if ctx.registry is None:
        return {"success": False, "message": "Help system is currently unavailable."}

    query = (args.get("query") or "").strip()
    report = render_available_actions(ctx.registry.skills_for_roles(user.roles), user, query)
    return {
        "success": True,
        "result": {"filterApplied": bool(query), "userRoles": list(user.roles), "report": report},
    }
