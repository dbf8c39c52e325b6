"""
Application status state machine — pure transition resolution.

Given (current status, requested status, service kind) decide whether the
move is legal and which side effects it carries.  Nothing here reads or
writes the database; ``application_lifecycle`` and ``legacy_applications``
apply the resulting plan.

Base graph:
    SUBMITTED     → UNDER_REVIEW
    UNDER_REVIEW  → APPROVED | REJECTED | PENDING_INFO
    PENDING_INFO  → UNDER_REVIEW | CLOSED
    APPROVED      → CLOSED   (not for certificate-bearing kinds)
    REJECTED      → CLOSED
    CLOSED        → (none)

Legacy graph:
    SUBMITTED              → UNDER_REVIEW
    UNDER_REVIEW           → APPROVED | REJECTED | CORRECTIONS_REQUESTED
    CORRECTIONS_REQUESTED  → SUBMITTED   (resubmission only)

Usage:
    from portal.services.status_machine import resolve_transition

    plan = resolve_transition("UNDER_REVIEW", "APPROVED", "ESG_LABEL")
    plan.issue_certificate   # True
"""

from dataclasses import dataclass

from portal.core.exceptions import TransitionError, ValidationError
from portal.models.application import APPLICATION_STATUSES, TERMINAL_STATUSES
from portal.models.certificate import CERTIFICATE_BEARING_SERVICE_TYPES
from portal.models.legacy import LEGACY_STATUSES

BASE_TRANSITIONS = {
    "SUBMITTED":    ["UNDER_REVIEW"],
    "UNDER_REVIEW": ["APPROVED", "REJECTED", "PENDING_INFO"],
    "PENDING_INFO": ["UNDER_REVIEW", "CLOSED"],
    "APPROVED":     ["CLOSED"],
    "REJECTED":     ["CLOSED"],
    "CLOSED":       [],
}

LEGACY_TRANSITIONS = {
    "SUBMITTED":             ["UNDER_REVIEW"],
    "UNDER_REVIEW":          ["APPROVED", "REJECTED", "CORRECTIONS_REQUESTED"],
    "CORRECTIONS_REQUESTED": [],
    "APPROVED":              [],
    "REJECTED":              [],
}

# Submitter-driven moves, never available to staff updates
RESUBMISSION_TRANSITIONS = {
    "CORRECTIONS_REQUESTED": "SUBMITTED",   # legacy
    "PENDING_INFO": "UNDER_REVIEW",         # base: information supplied
}

APPROVED_STATUS = "APPROVED"


@dataclass(frozen=True)
class TransitionPlan:
    """Outcome of a legal transition request."""

    from_status: str
    to_status: str
    noop: bool = False
    issue_certificate: bool = False
    enters_terminal: bool = False


def is_certificate_bearing(service_type: str) -> bool:
    return service_type in CERTIFICATE_BEARING_SERVICE_TYPES


def allowed_next_statuses(current: str, service_type: str) -> list[str]:
    """Statuses a staff member may move a base record to from *current*."""
    targets = list(BASE_TRANSITIONS.get(current, []))
    if current == APPROVED_STATUS and is_certificate_bearing(service_type):
        targets = [t for t in targets if t != "CLOSED"]
    return targets


def resolve_transition(current: str, requested: str, service_type: str) -> TransitionPlan:
    """
    Validate a base-record status change.

    Returns a TransitionPlan; a request for the current status yields a plan
    with ``noop=True`` and no side effects.

    Raises:
        ValidationError: *requested* is not a known status.
        TransitionError: *requested* is not reachable from *current*.
    """
    if requested not in APPLICATION_STATUSES:
        raise ValidationError(
            f"Unknown status: {requested}",
            details={"status": list(APPLICATION_STATUSES)},
        )
    if requested == current:
        return TransitionPlan(current, requested, noop=True)

    if requested not in BASE_TRANSITIONS.get(current, []):
        raise TransitionError(current, requested, f"not reachable from {current}")
    if current == APPROVED_STATUS and is_certificate_bearing(service_type):
        raise TransitionError(
            current, requested,
            f"{service_type} approval owns a certificate and cannot be closed",
        )

    return TransitionPlan(
        from_status=current,
        to_status=requested,
        issue_certificate=requested == APPROVED_STATUS and is_certificate_bearing(service_type),
        enters_terminal=requested in TERMINAL_STATUSES,
    )


def resolve_legacy_transition(current: str, requested: str) -> TransitionPlan:
    """Validate a legacy-record status change made by staff.

    Legacy records are ESG-only, so approval always mints a certificate.
    """
    if requested not in LEGACY_STATUSES:
        raise ValidationError(
            f"Unknown legacy status: {requested}",
            details={"status": list(LEGACY_STATUSES)},
        )
    if requested == current:
        return TransitionPlan(current, requested, noop=True)
    if requested not in LEGACY_TRANSITIONS.get(current, []):
        raise TransitionError(current, requested, f"not reachable from {current}")
    return TransitionPlan(
        from_status=current,
        to_status=requested,
        issue_certificate=requested == APPROVED_STATUS,
        enters_terminal=requested in ("APPROVED", "REJECTED"),
    )


def resolve_resubmission(current: str) -> TransitionPlan:
    """Submitter-driven move out of a parking state.

    Raises TransitionError unless *current* is a state awaiting the submitter.
    """
    target = RESUBMISSION_TRANSITIONS.get(current)
    if target is None:
        raise TransitionError(current, "resubmission", "record is not awaiting the submitter")
    return TransitionPlan(from_status=current, to_status=target)
