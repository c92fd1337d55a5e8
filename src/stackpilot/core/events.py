"""Classification of engine events into tagged variants.

Engine events arrive as records with one populated field per event kind. They
are decided once here, and downstream code only matches on the variant.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from stackpilot.core.types import Diagnostic

ERROR_SEVERITIES = frozenset({"error", "info#err"})
AGGREGATE_ERROR_PREFIX = "One or more errors occurred"
URN_DELIMITER = "::"
NOOP_OP = "same"

IgnoredReason = Literal["prelude", "summary", "cancel", "diagnostic", "aggregate", "same"]


@dataclass(frozen=True)
class ProgressNotice:
    """A resource step worth showing to the operator."""

    phase: Literal["pre", "post"]
    op: str
    resource_type: str
    name: str

    def render(self) -> str:
        if self.phase == "pre":
            return f"{self.op} {self.resource_type} {self.name} ..."
        return f"{self.op}d {self.name}"


@dataclass(frozen=True)
class DiagnosticNotice:
    diagnostic: Diagnostic


@dataclass(frozen=True)
class IgnoredEvent:
    reason: IgnoredReason


@dataclass(frozen=True)
class UnrecognizedEvent:
    event: Any


ClassifiedEvent = ProgressNotice | DiagnosticNotice | IgnoredEvent | UnrecognizedEvent


def resource_display_name(urn: str) -> str:
    """Return the resource name segment of a URN (``urn:...::...::<type>::<name>``)."""
    parts = urn.split(URN_DELIMITER)
    if len(parts) > 3:
        return parts[3]
    return urn


def is_aggregate_error(message: str) -> bool:
    return message.startswith(AGGREGATE_ERROR_PREFIX)


def classify_event(event: Any) -> ClassifiedEvent:
    """Decide which variant one engine event belongs to."""

    diagnostic_event = getattr(event, "diagnostic_event", None)
    if diagnostic_event is not None:
        return _classify_diagnostic(diagnostic_event)

    pre_event = getattr(event, "resource_pre_event", None)
    if pre_event is not None:
        return _classify_step(pre_event.metadata, "pre")

    outputs_event = getattr(event, "res_outputs_event", None)
    if outputs_event is not None:
        return _classify_step(outputs_event.metadata, "post")

    if getattr(event, "prelude_event", None) is not None:
        return IgnoredEvent("prelude")
    if getattr(event, "summary_event", None) is not None:
        return IgnoredEvent("summary")
    if getattr(event, "cancel_event", None) is not None:
        return IgnoredEvent("cancel")
    return UnrecognizedEvent(event)


def _classify_diagnostic(diagnostic_event: Any) -> ClassifiedEvent:
    severity = str(getattr(diagnostic_event, "severity", "") or "")
    if severity not in ERROR_SEVERITIES:
        return IgnoredEvent("diagnostic")
    message = str(getattr(diagnostic_event, "message", "") or "")
    if is_aggregate_error(message):
        return IgnoredEvent("aggregate")
    urn = getattr(diagnostic_event, "urn", None) or None
    return DiagnosticNotice(Diagnostic(severity=severity, message=message, urn=urn))


def _classify_step(metadata: Any, phase: Literal["pre", "post"]) -> ClassifiedEvent:
    op = _enum_value(metadata.op)
    if op == NOOP_OP:
        return IgnoredEvent("same")
    return ProgressNotice(
        phase=phase,
        op=op,
        resource_type=str(metadata.type),
        name=resource_display_name(str(metadata.urn)),
    )


def _enum_value(value: Any) -> str:
    return str(getattr(value, "value", value))
