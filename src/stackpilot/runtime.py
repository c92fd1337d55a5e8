"""Session runtime wiring settings, engine and stack together."""

from __future__ import annotations

from dataclasses import dataclass

from stackpilot.config import Settings
from stackpilot.core.deploy import DeploymentOrchestrator, ProgressCallback
from stackpilot.core.engine import CompletionBackend, ConversationEngine
from stackpilot.core.prompt import PromptContext
from stackpilot.core.types import ConversationState, ModelConfig, SessionOptions
from stackpilot.integrations.openai_client import build_completion_client
from stackpilot.integrations.pulumi_stack import stack_opener


@dataclass
class AppRuntime:
    """Everything one operator session needs."""

    settings: Settings
    options: SessionOptions
    engine: ConversationEngine
    orchestrator: DeploymentOrchestrator

    async def start(self) -> None:
        """Initialize the stack when deployments are enabled."""
        if self.options.auto_deploy and not self.orchestrator.initialized:
            await self.orchestrator.initialize(self.settings.stack_name, self.settings.project_name)


def build_runtime(
    settings: Settings,
    *,
    on_progress: ProgressCallback | None = None,
    backend: CompletionBackend | None = None,
) -> AppRuntime:
    options = SessionOptions(auto_deploy=settings.auto_deploy)
    orchestrator = DeploymentOrchestrator(
        stack_opener(settings.resolve_home()),
        region=settings.region,
        options=options,
        on_progress=on_progress,
    )
    state = ConversationState(
        model=ModelConfig(model=settings.model, temperature=settings.temperature),
        options=options,
    )
    engine = ConversationEngine(
        backend or build_completion_client(settings),
        state=state,
        prompt_context=PromptContext(region=settings.region),
        orchestrator=orchestrator,
    )
    return AppRuntime(settings=settings, options=options, engine=engine, orchestrator=orchestrator)
