from stackpilot.core.prompt import (
    PromptContext,
    build_prompt,
    build_prompt_request,
    build_title_prompt,
    render_prompt,
)
from stackpilot.core.types import ConversationState, Diagnostic, ModelConfig

PROGRAM = 'import pulumi\nimport pulumi_aws as aws\n\nbucket = aws.s3.Bucket("site")\npulumi.export("name", bucket.id)\n'


def _state(**kwargs) -> ConversationState:
    return ConversationState(model=ModelConfig(model="gpt-test"), **kwargs)


def test_prompt_is_deterministic() -> None:
    state = _state(program=PROGRAM)
    assert build_prompt(state, "add a queue") == build_prompt(state, "add a queue")


def test_prompt_embeds_program_verbatim_and_instruction() -> None:
    prompt = build_prompt(_state(program=PROGRAM), "add a queue")
    assert f"```python\n{PROGRAM}\n```" in prompt
    assert prompt.rstrip().endswith("Instructions:\nadd a queue")


def test_prompt_embeds_target_cloud_and_region() -> None:
    prompt = build_prompt(_state(), "an AWS VPC", PromptContext(region="eu-central-1"))
    assert "Pulumi Python" in prompt
    assert "AWS `eu-central-1` region" in prompt


def test_prompt_lists_previous_diagnostics() -> None:
    diagnostics = [
        Diagnostic(severity="error", message="bucket name taken", urn="urn:pulumi:dev::p::aws:s3/bucket:Bucket::site"),
        Diagnostic(severity="error", message="bucket name taken"),
    ]
    request = build_prompt_request(_state(diagnostics=diagnostics), "fix it")
    assert len(request.errors) == 2
    prompt = render_prompt(request)
    assert '"message": "bucket name taken"' in prompt
    assert '"urn": "urn:pulumi:dev::p::aws:s3/bucket:Bucket::site"' in prompt


def test_prompt_without_diagnostics_has_empty_error_section() -> None:
    prompt = build_prompt(_state(), "an AWS VPC")
    assert "Errors:\n\n\nStack Outputs:" in prompt
    assert build_prompt_request(_state(), "x").outputs == {}


def test_program_with_braces_is_not_treated_as_template() -> None:
    program = 'tags = {"Name": "{name}"}\n'
    assert program in build_prompt(_state(program=program), "keep it")


def test_title_prompt_contains_program() -> None:
    assert PROGRAM in build_title_prompt(PROGRAM)
