"""Prompt rendering for program synthesis turns."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from stackpilot.core.types import ConversationState, PromptRequest

FIX_ERRORS_INSTRUCTION = "Fix the errors"


@dataclass(frozen=True)
class PromptContext:
    """Language and target cloud for every prompt of a session."""

    lang: str = "Python"
    langcode: str = "python"
    cloud: str = "AWS"
    region: str = "us-west-2"


PROMPT_TEMPLATE = """You are StackPilot, an AI agent that builds and deploys Cloud Infrastructure written in Pulumi {lang}.
Generate a description of the Pulumi program you will define, followed by a single Pulumi {lang} program in response to each of my Instructions.
I will then deploy that program for you and let you know if there were errors.
You should modify the current program based on my instructions.
You should not start from scratch unless asked.
You are creating infrastructure in the {cloud} `{region}` region.
Always include stack exports in the program, using pulumi.export.
Do not use the local filesystem. Do not use Pulumi config.
If you can:
* Use "pulumi_awsx" for ECS, Fargate and API Gateway.
* Use "pulumi_eks" for EKS.
* Package lambda and serverless function code inline with pulumi.AssetArchive and pulumi.StringAsset.

Current Program:
```{langcode}
{program}
```

Errors:
{errors}

Stack Outputs:
{outputs}

Instructions:
{instructions}
"""

TITLE_PROMPT_TEMPLATE = """Generate a short title, at most six words, describing what the following Pulumi program deploys.
Respond with the title only, without quotes or punctuation at the end.

```
{program}
```
"""


def build_prompt_request(
    state: ConversationState,
    instruction: str,
    context: PromptContext | None = None,
) -> PromptRequest:
    context = context or PromptContext()
    return PromptRequest(
        lang=context.lang,
        langcode=context.langcode,
        cloud=context.cloud,
        region=context.region,
        program=state.program,
        errors=tuple(diagnostic.to_json() for diagnostic in state.diagnostics),
        # Outputs of the previous deployment are not fed back yet.
        outputs=MappingProxyType({}),
        instructions=instruction,
    )


def render_prompt(request: PromptRequest) -> str:
    return PROMPT_TEMPLATE.format(
        lang=request.lang,
        langcode=request.langcode,
        cloud=request.cloud,
        region=request.region,
        program=request.program,
        errors="\n".join(request.errors),
        outputs=_render_outputs(request.outputs),
        instructions=request.instructions,
    )


def build_prompt(state: ConversationState, instruction: str, context: PromptContext | None = None) -> str:
    """Render the prompt for one turn from the current state and a new instruction."""
    return render_prompt(build_prompt_request(state, instruction, context))


def build_title_prompt(program: str) -> str:
    return TITLE_PROMPT_TEMPLATE.format(program=program)


def _render_outputs(outputs: Mapping[str, str]) -> str:
    return "\n".join(f"{name}: {value}" for name, value in outputs.items())
