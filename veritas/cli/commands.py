"""CLI commands for veritas."""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from veritas import __logo__, __version__

app = typer.Typer(
    name="veritas",
    help=f"{__logo__} veritas - Validate, challenge and audit claims against a knowledge base",
    no_args_is_help=True,
)

console = Console()

SKILLS_PACKAGE = "veritas.skills"

_state: dict[str, str | None] = {"log_level": None}


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} veritas v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    log_level: str = typer.Option(
        None, "--log-level", "-l", help="Override the configured log level (DEBUG, INFO, WARNING, ...)"
    ),
):
    """veritas - knowledge-base agent."""
    _state["log_level"] = log_level


# ============================================================================
# Shared helpers
# ============================================================================


def _setup_logging(config=None):
    from veritas.config.loader import load_config
    from veritas.logging_config import setup_logging

    config = config or load_config()
    setup_logging(config.logging, level=_state["log_level"])
    return config


def _load_registry():
    from veritas.agent.registry import SkillRegistry

    registry = SkillRegistry()
    registry.discover(SKILLS_PACKAGE)
    return registry


def _build_shell(config, offline: bool = False, user=None):
    """Wire the store, strategies, completion provider and skills into a shell."""
    from veritas.agent.arguments import ArgumentExtractor
    from veritas.agent.audit import AuditLog
    from veritas.agent.context import SkillContext
    from veritas.agent.loop import AgentShell
    from veritas.agent.selector import SkillSelector
    from veritas.io.uploads import UploadRegistry
    from veritas.knowledge.store import KnowledgeStore
    from veritas.providers.litellm_provider import LiteLLMCompletion
    from veritas.strategies import LLMStrategy, MockStrategy, StrategyRegistry

    defaults = config.agents.defaults
    store = KnowledgeStore(config.knowledge_path)
    uploads = UploadRegistry(config.workspace_path)

    completion = None
    if not offline and config.get_api_key():
        completion = LiteLLMCompletion(
            model=defaults.model,
            api_key=config.get_api_key(),
            api_base=config.get_api_base(),
            max_tokens=defaults.max_tokens,
            temperature=defaults.temperature,
            fast_model=defaults.fast_model,
        )

    strategies = StrategyRegistry(defaults.strategy_preference)
    if completion is not None:
        strategies.register(
            LLMStrategy.name,
            LLMStrategy(store, completion, uploads, config.knowledge.max_context_aspects),
        )
    strategies.register(MockStrategy.name, MockStrategy(store, uploads))

    registry = _load_registry()
    context = SkillContext(
        store=store,
        strategies=strategies,
        completion=completion,
        uploads=uploads,
        registry=registry,
        audit=AuditLog(config.audit_path, enabled=config.audit.enabled),
        workspace=config.workspace_path,
    )
    return AgentShell(
        registry,
        context,
        extractor=ArgumentExtractor(completion),
        selector=SkillSelector(completion, limit=defaults.skill_candidates),
        user=user,
    )


def _cli_user(registry, username: str | None, role: str | None):
    from veritas.agent.context import User

    if not username or not role:
        return None
    resolved = registry.roles.resolve(role)
    if resolved is None:
        console.print(f"[red]Unknown role '{role}'.[/red]")
        raise typer.Exit(1)
    return User(username=username, roles=(resolved.label,))


def _print_reply(reply):
    if not reply.text:
        return
    console.print(Markdown(reply.text))


# ============================================================================
# Setup
# ============================================================================


@app.command()
def onboard():
    """Initialize veritas configuration and workspace."""
    from veritas.config.loader import get_config_path, save_config
    from veritas.config.schema import Config

    config_path = get_config_path()
    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config)
    console.print(f"[green]✓[/green] Created config at {config_path}")

    workspace = config.workspace_path
    workspace.mkdir(parents=True, exist_ok=True)
    console.print(f"[green]✓[/green] Created workspace at {workspace}")
    console.print(f"\n{__logo__} veritas is ready!")
    console.print("\nNext steps:")
    console.print(f"  1. Add your API key under [cyan]provider.apiKey[/cyan] in {config_path}")
    console.print('  2. Chat: [cyan]veritas chat --user alice --role sysAdmin[/cyan]')


# ============================================================================
# Skills & roles
# ============================================================================


@app.command()
def skills():
    """List discovered skills."""
    _setup_logging()
    registry = _load_registry()

    table = Table(title="Skills")
    table.add_column("Name", style="cyan")
    table.add_column("Roles", style="green")
    table.add_column("Required", style="yellow")
    table.add_column("Description")
    for skill in registry.skills:
        table.add_row(
            skill.name,
            ", ".join(skill.roles()),
            ", ".join(skill.spec.required_arguments) or "-",
            skill.spec.human_description or skill.spec.description,
        )
    console.print(table)


@app.command()
def roles():
    """List the roles declared by the skills."""
    _setup_logging()
    registry = _load_registry()
    for role in registry.roles.list_roles():
        console.print(f"• {role.label} [dim]({role.id})[/dim]")


@app.command()
def knowledge(
    export: Path = typer.Option(None, "--export", "-e", help="Write a copy of the whole store document to this file"),
):
    """Show knowledge store statistics."""
    from veritas.knowledge.store import KnowledgeStore

    config = _setup_logging()
    path = config.knowledge_path
    store = KnowledgeStore(path)
    stats = store.stats()

    console.print(f"{__logo__} Knowledge store: {path} {'[green]✓[/green]' if path.exists() else '[dim]empty[/dim]'}")
    console.print(f"Resources: {stats['resources']}")
    console.print(f"Facts: {stats['facts']}")
    console.print(f"Rules: {stats['rules']}")

    if export:
        export.parent.mkdir(parents=True, exist_ok=True)
        export.write_text(json.dumps(store.get_snapshot(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        console.print(f"[green]✓[/green] Exported store to {export}")


# ============================================================================
# Agent
# ============================================================================


@app.command()
def ask(
    message: str = typer.Argument(..., help="Request to run"),
    user: str = typer.Option(..., "--user", "-u", help="User name"),
    role: str = typer.Option(..., "--role", "-r", help="Role to act as"),
    offline: bool = typer.Option(False, "--offline", help="Do not call the completion provider"),
):
    """Run a single request."""
    config = _setup_logging()
    shell = _build_shell(config, offline=offline)
    shell.user = _cli_user(shell.registry, user, role)

    reply = asyncio.run(shell.handle(message))
    _print_reply(reply)
    if reply.pending:
        console.print("[yellow]More input is needed; use `veritas chat` to continue.[/yellow]")
        raise typer.Exit(2)


@app.command()
def chat(
    user: str = typer.Option(None, "--user", "-u", help="User name"),
    role: str = typer.Option(None, "--role", "-r", help="Role to act as"),
    offline: bool = typer.Option(False, "--offline", help="Do not call the completion provider"),
):
    """Interactive session with the agent."""
    from veritas.agent.help import authentication_help
    config = _setup_logging()
    shell = _build_shell(config, offline=offline)
    shell.user = _cli_user(shell.registry, user, role)

    console.print(f"{__logo__} Interactive mode (type 'exit' or Ctrl+C to quit)\n")
    if shell.user is None:
        console.print(authentication_help(shell.registry.roles.list_roles()))
    else:
        console.print(f"Authenticated as {shell.user.username} ({', '.join(shell.user.roles)}).")

    async def run_interactive():
        while True:
            try:
                user_input = console.input("[bold blue]You:[/bold blue] ")
            except (KeyboardInterrupt, EOFError):
                console.print("\nGoodbye!")
                break
            reply = await shell.handle(user_input)
            _print_reply(reply)
            if reply.exit:
                break

    asyncio.run(run_interactive())


if __name__ == "__main__":
    app()
