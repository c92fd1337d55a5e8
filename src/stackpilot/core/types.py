"""Shared core dataclasses."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal, Protocol

DEFAULT_PROGRAM = "import pulumi\n"


@dataclass(frozen=True)
class ModelConfig:
    """Model selection, fixed for the lifetime of a session."""

    model: str
    temperature: float = 0.0


@dataclass
class SessionOptions:
    """Mutable session switches shared by every component that logs."""

    verbose: bool = False
    auto_deploy: bool = True


@dataclass(frozen=True)
class Diagnostic:
    """One error record emitted by the engine during an update."""

    severity: str
    message: str
    urn: str | None = None

    def to_json(self) -> str:
        payload: dict[str, str] = {"severity": self.severity, "message": self.message}
        if self.urn:
            payload["urn"] = self.urn
        return json.dumps(payload, ensure_ascii=False)


@dataclass
class ConversationState:
    """Per-session conversation state."""

    model: ModelConfig
    options: SessionOptions = field(default_factory=SessionOptions)
    program: str = DEFAULT_PROGRAM
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def verbose(self) -> bool:
        return self.options.verbose


@dataclass(frozen=True)
class PromptRequest:
    """Values interpolated into one turn's prompt."""

    lang: str
    langcode: str
    cloud: str
    region: str
    program: str
    errors: tuple[str, ...]
    outputs: Mapping[str, str]
    instructions: str


@dataclass(frozen=True)
class StreamChunk:
    """One decoded stream item."""

    kind: Literal["text", "done", "malformed"]
    text: str = ""
    raw: str = ""


@dataclass(frozen=True)
class ProgramResponse:
    """Raw model text plus the extracted program, if any."""

    text: str
    program: str | None

    @property
    def has_program(self) -> bool:
        return self.program is not None


@dataclass(frozen=True)
class StackOutput:
    """One stack output value."""

    value: Any
    secret: bool = False


@dataclass(frozen=True)
class DeploymentResult:
    """Outcome of one update: outputs on success, diagnostics on failure."""

    outputs: Mapping[str, StackOutput] | None = None
    diagnostics: tuple[Diagnostic, ...] = ()

    def __post_init__(self) -> None:
        if self.outputs is not None and self.diagnostics:
            raise ValueError("deployment result cannot carry both outputs and diagnostics")

    @classmethod
    def success(cls, outputs: Mapping[str, StackOutput]) -> DeploymentResult:
        return cls(outputs=MappingProxyType(dict(outputs)))

    @classmethod
    def failure(cls, diagnostics: tuple[Diagnostic, ...] | list[Diagnostic]) -> DeploymentResult:
        return cls(outputs=None, diagnostics=tuple(diagnostics))

    @property
    def succeeded(self) -> bool:
        return self.outputs is not None


class TurnPhase(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    EXTRACTING = "extracting"
    DEPLOYING = "deploying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class TurnOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NO_PROGRAM = "no_program"
    GENERATED = "generated"


@dataclass(frozen=True)
class TurnResult:
    """Result of one instruction-to-result cycle."""

    outcome: TurnOutcome
    response: ProgramResponse
    outputs: Mapping[str, StackOutput] | None = None
    diagnostics: tuple[Diagnostic, ...] = ()
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.outcome is TurnOutcome.FAILED

    @property
    def program(self) -> str | None:
        return self.response.program

    @property
    def text(self) -> str:
        return self.response.text


class StackHandle(Protocol):
    """Narrow view of an engine-owned stack."""

    def set_region(self, region: str) -> None: ...

    def set_program(self, program: str) -> None: ...

    def cancel(self) -> None: ...

    def up(self, on_event: Any) -> Mapping[str, StackOutput]: ...

    def outputs(self) -> Mapping[str, StackOutput]: ...

    def export_resources(self) -> list[dict[str, Any]]: ...

    def destroy(self) -> None: ...

    def url(self) -> str | None: ...
