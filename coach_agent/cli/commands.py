"""CLI commands for coach-agent."""

import asyncio
import sys
import uuid
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from coach_agent.config import Config, ensure_data_dir, load_config, save_default_config

app = typer.Typer(
    name="coach-agent",
    help="coach-agent: AI fitness coach creation and streaming coach conversations",
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """coach-agent CLI entrypoint."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _mask(secret: str | None) -> str:
    if not secret:
        return "[red]Not configured[/red]"
    return f"...{secret[-4:]}" if len(secret) > 8 else "****"


def _make_provider(config: Config):
    from coach_agent.providers.litellm_provider import LiteLLMProvider

    model = config.agents.defaults.model
    api_key = config.get_api_key()
    # Bedrock models authenticate with AWS credentials instead of an API key.
    if not api_key and not model.startswith("bedrock/"):
        console.print("[red]Error:[/red] No API key configured. Run 'coach-agent onboard' first.")
        raise typer.Exit(1)

    return LiteLLMProvider(api_key=api_key, api_base=config.get_api_base(), default_model=model)


@app.command()
def onboard(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Initialize configuration and the data directory."""
    path = save_default_config(config_path)
    config = load_config(config_path)
    data_dir = ensure_data_dir(config)

    console.print(f"[green]Config created at:[/green] {path}")
    console.print(f"[green]Data directory initialized at:[/green] {data_dir}")
    console.print("\n[yellow]Next steps:[/yellow]")
    console.print("1. Edit config to add your API key (or export AWS credentials for Bedrock)")
    console.print("2. Run: coach-agent create-coach --user <user_id> --session <session_id>")


@app.command()
def status(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Show current configuration."""
    config = load_config(config_path)
    defaults = config.agents.defaults

    table = Table(title="coach-agent Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Data Directory", str(config.data_path))
    table.add_row("Model", defaults.model)
    table.add_row("Utility Model", defaults.utility_model)
    table.add_row("Max Tokens", str(defaults.max_tokens))
    table.add_row("Temperature", str(defaults.temperature))
    table.add_row("Max Tool Iterations", str(defaults.max_tool_iterations))
    table.add_row("Conversation Max Iterations", str(config.conversation.max_tool_iterations))
    table.add_row("Memory Detection", "Enabled" if config.conversation.memory_detection else "Disabled")
    table.add_row("Coach Creator Min Tools", str(config.coach_creator.min_required_tools))
    table.add_row("API Key", _mask(config.get_api_key()))
    table.add_row("API Base", config.get_api_base() or "Default")
    table.add_row("Jobs", config.jobs.api_base or "[dim]Local queue[/dim]")

    console.print(table)


@app.command("create-coach")
def create_coach(
    user_id: str = typer.Option(..., "--user", "-u", help="User ID"),
    session_id: str = typer.Option(..., "--session", "-s", help="Coach creator session ID"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Create a coach from a completed coach creator session."""
    config = load_config(config_path)
    data_dir = ensure_data_dir(config)
    provider = _make_provider(config)

    from coach_agent.agent.tasks import drain_detached
    from coach_agent.agents.coach_creator import CoachCreatorAgent, CoachCreatorContext, CoachCreatorSettings
    from coach_agent.storage import open_local_stores

    settings = CoachCreatorSettings.from_config(config, open_local_stores(data_dir))
    agent = CoachCreatorAgent(provider, CoachCreatorContext(user_id=user_id, session_id=session_id), settings)

    async def _run():
        result = await agent.create_coach()
        await drain_detached()
        return result

    result = asyncio.run(_run())
    if result.success:
        console.print(f"[green]Coach created:[/green] {result.coach_name} ({result.coach_config_id})")
        console.print(f"Personality: {result.primary_personality}, methodology: {result.primary_methodology}")
        return

    console.print(f"[red]Coach not created:[/red] {result.reason}")
    for issue in result.validation_issues or []:
        console.print(f"  - {issue}")
    raise typer.Exit(1)


@app.command()
def chat(
    user_id: str = typer.Option(..., "--user", "-u", help="User ID"),
    coach_id: str = typer.Option(..., "--coach", help="Coach ID"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Message to send"),
    conversation_id: Optional[str] = typer.Option(None, "--conversation", help="Conversation ID to continue"),
    timezone_name: Optional[str] = typer.Option(None, "--timezone", help="IANA timezone, e.g. Europe/Berlin"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
) -> None:
    """Talk to a coach."""
    config = load_config(config_path)
    data_dir = ensure_data_dir(config)
    provider = _make_provider(config)

    from coach_agent.agent.loop import AgentRunResult
    from coach_agent.agent.tasks import drain_detached
    from coach_agent.agents.conversation import (
        ChunkEvent,
        ContextualEvent,
        ConversationOrchestrator,
        ConversationSettings,
    )
    from coach_agent.errors import RecordNotFoundError
    from coach_agent.jobs.invoker import create_job_invoker
    from coach_agent.storage import open_local_stores

    settings = ConversationSettings.from_config(
        config, open_local_stores(data_dir), create_job_invoker(config.jobs, data_dir)
    )
    orchestrator = ConversationOrchestrator(provider, settings)
    conversation_id = conversation_id or f"conversation_{user_id}_{uuid.uuid4().hex[:8]}"

    async def _turn(text: str) -> None:
        try:
            async for event in orchestrator.stream_turn(
                user_id, coach_id, conversation_id, text, user_timezone=timezone_name
            ):
                if isinstance(event, ContextualEvent):
                    console.print(f"[dim]{event.message}[/dim]")
                elif isinstance(event, ChunkEvent):
                    console.print(event.text, end="", markup=False, highlight=False)
                elif isinstance(event, AgentRunResult):
                    logger.debug(
                        f"Turn finished: reason={event.terminal_reason.value}, tools={event.tools_used}, "
                        f"tokens={event.input_tokens}/{event.output_tokens}"
                    )
        finally:
            await drain_detached()
        console.print()

    try:
        if message:
            asyncio.run(_turn(message))
            return

        console.print(f"[bold]coach-agent[/bold] conversation {conversation_id}. Type 'exit' to quit.\n")
        while True:
            try:
                user_input = console.input("[bold blue]> [/bold blue]")
                if user_input.strip().lower() in ("exit", "quit"):
                    break
                if not user_input.strip():
                    continue
                asyncio.run(_turn(user_input))
                console.print()
            except (KeyboardInterrupt, EOFError):
                break
        console.print("\n[dim]Goodbye![/dim]")
    except RecordNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
