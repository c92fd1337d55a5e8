"""Pulumi Automation API adapter.

Generated programs are never evaluated in-process. Each stack gets a local
program workspace (``Pulumi.yaml`` with the ``python`` runtime), the program
text is written to its ``__main__.py``, and the Pulumi language host loads it.
The host runs the program in stackpilot's own virtualenv, so the provider
packages installed next to stackpilot (the ``aws`` extra) are importable.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from loguru import logger
from pulumi import automation as auto

from stackpilot.core.types import StackOutput

PROGRAM_FILE = "__main__.py"
REGION_CONFIG_KEY = "aws:region"
PYTHON_RUNTIME = "python"


def python_runtime_options(prefix: str, base_prefix: str) -> dict[str, str]:
    """Language host options pointing at the virtualenv at ``prefix``, if any."""

    if prefix == base_prefix:
        return {}
    return {"virtualenv": prefix}


def project_runtime() -> auto.ProjectRuntimeInfo:
    return auto.ProjectRuntimeInfo(
        name=PYTHON_RUNTIME,
        options=python_runtime_options(sys.prefix, sys.base_prefix),
    )


class PulumiStack:
    """One Pulumi stack backed by a local program directory."""

    def __init__(self, stack: auto.Stack, work_dir: Path) -> None:
        self._stack = stack
        self._work_dir = work_dir

    @classmethod
    def create_or_select(cls, stack_name: str, project_name: str, *, work_dir: Path) -> PulumiStack:
        work_dir.mkdir(parents=True, exist_ok=True)
        program_path = work_dir / PROGRAM_FILE
        if not program_path.exists():
            program_path.write_text("", encoding="utf-8")
        workspace = auto.LocalWorkspace(
            work_dir=str(work_dir),
            project_settings=auto.ProjectSettings(name=project_name, runtime=project_runtime()),
        )
        stack = auto.Stack.create_or_select(stack_name, workspace)
        logger.info("pulumi.stack.selected stack={} work_dir={}", stack_name, work_dir)
        return cls(stack, work_dir)

    @property
    def name(self) -> str:
        return self._stack.name

    @property
    def program_path(self) -> Path:
        return self._work_dir / PROGRAM_FILE

    def set_region(self, region: str) -> None:
        self._stack.set_config(REGION_CONFIG_KEY, auto.ConfigValue(value=region))

    def set_program(self, program: str) -> None:
        self.program_path.write_text(program, encoding="utf-8")

    def cancel(self) -> None:
        self._stack.cancel()

    def up(self, on_event: Callable[[auto.EngineEvent], Any]) -> Mapping[str, StackOutput]:
        result = self._stack.up(on_event=on_event)
        return _convert_outputs(result.outputs)

    def outputs(self) -> Mapping[str, StackOutput]:
        return _convert_outputs(self._stack.outputs())

    def export_resources(self) -> list[dict[str, Any]]:
        exported = self._stack.export_stack()
        deployment = exported.deployment or {}
        return list(deployment.get("resources") or [])

    def destroy(self) -> None:
        self._stack.destroy()

    def url(self) -> str | None:
        summary = self._stack.workspace.stack()
        if summary is None:
            return None
        return summary.url


def _convert_outputs(outputs: Mapping[str, auto.OutputValue]) -> dict[str, StackOutput]:
    return {name: StackOutput(value=output.value, secret=output.secret) for name, output in outputs.items()}


def stack_opener(home: Path) -> Callable[[str, str], PulumiStack]:
    """Return an opener placing each project/stack workspace under ``home``."""

    def open_stack(stack_name: str, project_name: str) -> PulumiStack:
        return PulumiStack.create_or_select(stack_name, project_name, work_dir=home / project_name / stack_name)

    return open_stack
