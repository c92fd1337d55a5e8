from __future__ import annotations

import io
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

import pytest
from rich.console import Console

from stackpilot.cli.commands import CommandHandler, detect_command
from stackpilot.cli.render import Renderer
from stackpilot.core.types import ConversationState, ModelConfig, SessionOptions, StackOutput


def test_detect_command_ignores_plain_instructions() -> None:
    assert detect_command("an AWS VPC with two subnets") is None
    assert detect_command("tell me about !open") is None


def test_detect_command_parses_name_and_args() -> None:
    command = detect_command("  !Open 'website url' extra ")
    assert command is not None
    assert command.name == "open"
    assert command.args == ["website url", "extra"]
    assert command.raw == "!Open 'website url' extra"


def test_detect_command_tolerates_unbalanced_quotes() -> None:
    command = detect_command("!open 'oops")
    assert command is not None
    assert command.args == ["'oops"]


@dataclass
class FakeOrchestrator:
    initialized: bool = True
    outputs_map: dict[str, StackOutput] = field(default_factory=dict)
    destroyed: bool = False

    async def destroy(self) -> None:
        self.destroyed = True

    async def outputs(self) -> dict[str, StackOutput]:
        return dict(self.outputs_map)

    async def export_resources(self) -> list[dict[str, Any]]:
        return [{"urn": "urn:pulumi:dev::proj::pulumi:pulumi:Stack::proj-dev", "type": "pulumi:pulumi:Stack"}]


def _handler(orchestrator: FakeOrchestrator) -> tuple[CommandHandler, SimpleNamespace, io.StringIO, list[str]]:
    options = SessionOptions()
    state = ConversationState(model=ModelConfig(model="gpt-test"), options=options, program="import pulumi\n# vpc\n")
    runtime = SimpleNamespace(options=options, engine=SimpleNamespace(state=state), orchestrator=orchestrator)
    buffer = io.StringIO()
    renderer = Renderer(Console(file=buffer, force_terminal=False, width=200))
    opened: list[str] = []
    handler = CommandHandler(runtime, renderer, open_url=opened.append)  # type: ignore[arg-type]
    return handler, runtime, buffer, opened


async def _run(handler: CommandHandler, line: str):
    command = detect_command(line)
    assert command is not None
    return await handler.handle(command)


@pytest.mark.asyncio
async def test_quit_destroys_initialized_stack() -> None:
    orchestrator = FakeOrchestrator()
    handler, _, buffer, _ = _handler(orchestrator)

    result = await _run(handler, "!quit")

    assert result.exit_requested is True
    assert orchestrator.destroyed is True
    assert "destroying stack..." in buffer.getvalue()
    assert "done. Goodbye!" in buffer.getvalue()


@pytest.mark.asyncio
async def test_quit_without_stack_skips_destroy() -> None:
    orchestrator = FakeOrchestrator(initialized=False)
    handler, _, buffer, _ = _handler(orchestrator)

    result = await _run(handler, "!quit")

    assert result.exit_requested is True
    assert orchestrator.destroyed is False
    assert "destroying" not in buffer.getvalue()


@pytest.mark.asyncio
async def test_program_prints_current_program() -> None:
    handler, _, buffer, _ = _handler(FakeOrchestrator())
    await _run(handler, "!program")
    assert "import pulumi\n# vpc" in buffer.getvalue()


@pytest.mark.asyncio
async def test_stack_prints_exported_resources() -> None:
    handler, _, buffer, _ = _handler(FakeOrchestrator())
    await _run(handler, "!stack")
    assert "pulumi:pulumi:Stack" in buffer.getvalue()


@pytest.mark.asyncio
async def test_stack_requires_deployed_stack() -> None:
    handler, _, buffer, _ = _handler(FakeOrchestrator(initialized=False))
    await _run(handler, "!stack")
    assert "No stack is deployed in this session." in buffer.getvalue()


@pytest.mark.asyncio
async def test_verbose_toggles_session_options() -> None:
    handler, runtime, buffer, _ = _handler(FakeOrchestrator())

    await _run(handler, "!verbose")
    assert runtime.options.verbose is True
    assert runtime.engine.state.verbose is True

    await _run(handler, "!verbose off")
    assert runtime.options.verbose is False
    assert "Verbose mode off." in buffer.getvalue()


@pytest.mark.asyncio
async def test_open_url_and_named_output() -> None:
    orchestrator = FakeOrchestrator(outputs_map={"website_url": StackOutput("http://bucket.s3-website.aws.com")})
    handler, _, buffer, opened = _handler(orchestrator)

    await _run(handler, "!open https://example.com")
    await _run(handler, "!open website_url")
    await _run(handler, "!open missing")
    await _run(handler, "!open")

    assert opened == ["https://example.com", "http://bucket.s3-website.aws.com"]
    output = buffer.getvalue()
    assert "No stack output named 'missing'." in output
    assert "Usage: !open <output>" in output


@pytest.mark.asyncio
async def test_unknown_command_is_reported() -> None:
    handler, _, buffer, _ = _handler(FakeOrchestrator())
    result = await _run(handler, "!deploy now")
    assert result.exit_requested is False
    assert "Unknown command: !deploy now" in buffer.getvalue()
