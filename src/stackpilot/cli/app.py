"""CLI main module for stackpilot."""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from loguru import logger

from stackpilot.cli.interactive import InteractiveCli, render_turn
from stackpilot.cli.render import Renderer
from stackpilot.config import get_settings
from stackpilot.core.repair import run_with_repairs
from stackpilot.errors import StackpilotError
from stackpilot.logging_utils import configure_logging
from stackpilot.runtime import build_runtime

app = typer.Typer(
    name="stackpilot",
    help="Describe cloud infrastructure, get it deployed.",
    add_completion=False,
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        chat(model=None, stack=None, project=None, deploy=True, auto_fix=0)


@app.command()
def chat(
    model: str | None = typer.Option(None, "--model", "-m", help="Chat model identifier"),
    stack: str | None = typer.Option(None, "--stack", help="Stack name"),
    project: str | None = typer.Option(None, "--project", help="Project name"),
    deploy: bool = typer.Option(True, "--deploy/--no-deploy", help="Deploy every generated program"),
    auto_fix: int = typer.Option(0, "--auto-fix", min=0, help="Automatic repair attempts per instruction"),
) -> None:
    """Start an interactive session."""

    configure_logging(profile="chat")
    renderer = Renderer()
    try:
        settings = get_settings(model=model, stack_name=stack, project_name=project, auto_deploy=deploy)
        runtime = build_runtime(settings, on_progress=renderer.progress)
        asyncio.run(InteractiveCli(runtime, renderer, max_repairs=auto_fix).run())
    except StackpilotError as exc:
        renderer.error(str(exc))
        raise typer.Exit(1) from exc
    except Exception as exc:
        logger.exception("cli.chat.error")
        renderer.error(f"unhandled error: {exc!s}")
        raise typer.Exit(1) from exc


@app.command()
def run(
    instruction: str = typer.Argument(..., help="Instruction describing the infrastructure"),
    model: str | None = typer.Option(None, "--model", "-m", help="Chat model identifier"),
    stack: str | None = typer.Option(None, "--stack", help="Stack name"),
    project: str | None = typer.Option(None, "--project", help="Project name"),
    deploy: bool = typer.Option(True, "--deploy/--no-deploy", help="Deploy the generated program"),
    auto_fix: int = typer.Option(0, "--auto-fix", min=0, help="Automatic repair attempts"),
) -> None:
    """Run a single instruction and print the result."""

    configure_logging(profile="default")
    renderer = Renderer()
    try:
        settings = get_settings(model=model, stack_name=stack, project_name=project, auto_deploy=deploy)
        runtime = build_runtime(settings, on_progress=renderer.progress)

        async def _run() -> bool:
            await runtime.start()
            result = await run_with_repairs(runtime.engine, instruction, max_repairs=auto_fix)
            render_turn(renderer, result)
            return result.failed

        failed = asyncio.run(_run())
    except StackpilotError as exc:
        renderer.error(str(exc))
        raise typer.Exit(1) from exc
    if failed:
        raise typer.Exit(1)


@app.command()
def title(
    program_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Program file to describe"),  # noqa: B008
    model: str | None = typer.Option(None, "--model", "-m", help="Chat model identifier"),
) -> None:
    """Generate a short title for a program."""

    configure_logging(profile="default")
    try:
        settings = get_settings(model=model, auto_deploy=False)
        runtime = build_runtime(settings)
        text = asyncio.run(runtime.engine.generate_title(program_file.read_text(encoding="utf-8")))
    except StackpilotError as exc:
        Renderer().error(str(exc))
        raise typer.Exit(1) from exc
    typer.echo(text)
