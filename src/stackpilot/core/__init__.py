"""Core repair loop for stackpilot."""

from stackpilot.core.deploy import DeploymentOrchestrator
from stackpilot.core.engine import CompletionBackend, ConversationEngine
from stackpilot.core.extract import extract_program
from stackpilot.core.prompt import PromptContext, build_prompt
from stackpilot.core.repair import run_with_repairs
from stackpilot.core.stream import CompletionStreamDecoder, decode_stream, iter_tokens
from stackpilot.core.types import (
    ConversationState,
    DeploymentResult,
    Diagnostic,
    ModelConfig,
    SessionOptions,
    StackOutput,
    TurnOutcome,
    TurnResult,
)

__all__ = [
    "CompletionBackend",
    "CompletionStreamDecoder",
    "ConversationEngine",
    "ConversationState",
    "DeploymentOrchestrator",
    "DeploymentResult",
    "Diagnostic",
    "ModelConfig",
    "PromptContext",
    "SessionOptions",
    "StackOutput",
    "TurnOutcome",
    "TurnResult",
    "build_prompt",
    "decode_stream",
    "extract_program",
    "iter_tokens",
    "run_with_repairs",
]
