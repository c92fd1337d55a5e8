"""stackpilot - describe it, deploy it."""

from .core import ConversationEngine, ConversationState, DeploymentOrchestrator, TurnResult

__version__ = "0.1.0"

__all__ = ["ConversationEngine", "ConversationState", "DeploymentOrchestrator", "TurnResult"]
