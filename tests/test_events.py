from __future__ import annotations

from types import SimpleNamespace
from typing import Any

from stackpilot.core.events import (
    DiagnosticNotice,
    IgnoredEvent,
    ProgressNotice,
    UnrecognizedEvent,
    classify_event,
    resource_display_name,
)

VPC_URN = "urn:pulumi:dev::proj::aws:ec2/vpc:Vpc::my-vpc"


def engine_event(**fields: Any) -> SimpleNamespace:
    kinds = (
        "diagnostic_event",
        "resource_pre_event",
        "res_outputs_event",
        "prelude_event",
        "summary_event",
        "cancel_event",
        "stdout_event",
    )
    return SimpleNamespace(**{kind: fields.get(kind) for kind in kinds})


def diagnostic(message: str, severity: str = "error", urn: str | None = None) -> SimpleNamespace:
    return engine_event(diagnostic_event=SimpleNamespace(message=message, severity=severity, urn=urn))


def step(kind: str, op: Any, urn: str = VPC_URN, type_: str = "aws:ec2/vpc:Vpc") -> SimpleNamespace:
    return engine_event(**{kind: SimpleNamespace(metadata=SimpleNamespace(op=op, urn=urn, type=type_))})


def test_resource_display_name_takes_fourth_segment() -> None:
    assert resource_display_name(VPC_URN) == "my-vpc"


def test_resource_display_name_falls_back_to_urn() -> None:
    assert resource_display_name("not-a-urn") == "not-a-urn"


def test_error_diagnostic_is_captured() -> None:
    classified = classify_event(diagnostic("subnet overlaps", urn=VPC_URN))
    assert isinstance(classified, DiagnosticNotice)
    assert classified.diagnostic.message == "subnet overlaps"
    assert classified.diagnostic.urn == VPC_URN


def test_info_err_diagnostic_is_captured() -> None:
    assert isinstance(classify_event(diagnostic("stderr output", severity="info#err")), DiagnosticNotice)


def test_aggregate_wrapper_diagnostic_is_dropped() -> None:
    classified = classify_event(diagnostic("One or more errors occurred: (1) boom"))
    assert classified == IgnoredEvent("aggregate")


def test_non_error_diagnostic_is_ignored() -> None:
    assert classify_event(diagnostic("warming up", severity="warning")) == IgnoredEvent("diagnostic")


def test_pre_event_renders_progress_line() -> None:
    classified = classify_event(step("resource_pre_event", "create"))
    assert isinstance(classified, ProgressNotice)
    assert classified.render() == "create aws:ec2/vpc:Vpc my-vpc ..."


def test_post_event_renders_progress_line_with_enum_op() -> None:
    op = SimpleNamespace(value="update")
    classified = classify_event(step("res_outputs_event", op))
    assert isinstance(classified, ProgressNotice)
    assert classified.render() == "updated my-vpc"


def test_same_op_is_ignored() -> None:
    assert classify_event(step("resource_pre_event", "same")) == IgnoredEvent("same")
    assert classify_event(step("res_outputs_event", "same")) == IgnoredEvent("same")


def test_lifecycle_events_are_ignored() -> None:
    assert classify_event(engine_event(prelude_event=object())) == IgnoredEvent("prelude")
    assert classify_event(engine_event(summary_event=object())) == IgnoredEvent("summary")
    assert classify_event(engine_event(cancel_event=object())) == IgnoredEvent("cancel")


def test_other_events_are_unrecognized() -> None:
    event = engine_event(stdout_event=SimpleNamespace(message="hi"))
    classified = classify_event(event)
    assert isinstance(classified, UnrecognizedEvent)
    assert classified.event is event
