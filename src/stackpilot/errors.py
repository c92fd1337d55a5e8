"""Application-level exception types for stackpilot."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stackpilot.core.types import DeploymentResult, Diagnostic


class StackpilotError(Exception):
    """Base exception for stackpilot."""


class ConfigurationError(StackpilotError):
    """Base exception for configuration and startup validation errors."""


class ApiKeyNotConfiguredError(ConfigurationError):
    """Raised when an API key is required but missing."""


class PromptError(StackpilotError):
    """Raised when a model request or its response stream fails."""


class StreamDecodeError(PromptError):
    """Raised when a completion stream carries a malformed payload or ends early."""


class DeploymentError(StackpilotError):
    """Raised when the engine fails an update; carries the failed result with its diagnostics."""

    def __init__(self, message: str, result: DeploymentResult) -> None:
        super().__init__(message)
        self.result = result

    @property
    def diagnostics(self) -> tuple[Diagnostic, ...]:
        return self.result.diagnostics


class InitializationError(StackpilotError):
    """Raised when the stack cannot be selected or created."""


class StackNotInitializedError(StackpilotError):
    """Raised when a stack operation is issued before initialization."""
