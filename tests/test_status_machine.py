"""
Exhaustive transition tests for the application status graphs.

    Base graph (BASE_TRANSITIONS) — 6 states
      - SUBMITTED → UNDER_REVIEW
      - UNDER_REVIEW → APPROVED | REJECTED | PENDING_INFO
      - PENDING_INFO → UNDER_REVIEW | CLOSED
      - APPROVED → CLOSED (not for ESG_LABEL)
      - REJECTED → CLOSED

    Legacy graph (LEGACY_TRANSITIONS) — 5 states

Every pair outside the graph raises TransitionError; a request for the
current status is a no-op plan.
"""

import pytest

from portal.core.exceptions import TransitionError, ValidationError
from portal.models.application import APPLICATION_STATUSES
from portal.models.legacy import LEGACY_STATUSES
from portal.services.status_machine import (
    BASE_TRANSITIONS,
    LEGACY_TRANSITIONS,
    allowed_next_statuses,
    resolve_legacy_transition,
    resolve_resubmission,
    resolve_transition,
)

_VALID_BASE = [(src, dst) for src, targets in BASE_TRANSITIONS.items() for dst in targets]
_INVALID_BASE = [
    (src, dst)
    for src in APPLICATION_STATUSES
    for dst in APPLICATION_STATUSES
    if src != dst and dst not in BASE_TRANSITIONS[src]
]


class TestBaseGraph:
    @pytest.mark.parametrize("current,requested", _VALID_BASE)
    def test_valid_edges_for_non_certificate_kind(self, current, requested):
        plan = resolve_transition(current, requested, "KNOWLEDGE_SHARING")
        assert plan.from_status == current
        assert plan.to_status == requested
        assert not plan.noop
        assert not plan.issue_certificate

    @pytest.mark.parametrize("current,requested", _INVALID_BASE)
    def test_invalid_edges_raise(self, current, requested):
        with pytest.raises(TransitionError) as exc:
            resolve_transition(current, requested, "KNOWLEDGE_SHARING")
        assert exc.value.current_status == current
        assert exc.value.requested_status == requested

    @pytest.mark.parametrize("status", APPLICATION_STATUSES)
    def test_same_status_is_noop(self, status):
        plan = resolve_transition(status, status, "ESG_LABEL")
        assert plan.noop
        assert not plan.issue_certificate
        assert not plan.enters_terminal

    def test_unknown_status_is_validation_error(self):
        with pytest.raises(ValidationError):
            resolve_transition("SUBMITTED", "ARCHIVED", "ESG_LABEL")

    def test_esg_approval_issues_certificate(self):
        plan = resolve_transition("UNDER_REVIEW", "APPROVED", "ESG_LABEL")
        assert plan.issue_certificate
        assert plan.enters_terminal

    def test_non_esg_approval_has_no_certificate(self):
        plan = resolve_transition("UNDER_REVIEW", "APPROVED", "CHAMBER_BOOST")
        assert not plan.issue_certificate
        assert plan.enters_terminal

    def test_esg_approved_cannot_close(self):
        with pytest.raises(TransitionError):
            resolve_transition("APPROVED", "CLOSED", "ESG_LABEL")

    @pytest.mark.parametrize("requested", ["REJECTED", "CLOSED"])
    def test_terminal_flag(self, requested):
        current = "UNDER_REVIEW" if requested == "REJECTED" else "REJECTED"
        assert resolve_transition(current, requested, "POLICY_ADVOCACY").enters_terminal

    def test_pending_info_is_not_terminal(self):
        assert not resolve_transition("UNDER_REVIEW", "PENDING_INFO", "ESG_LABEL").enters_terminal


class TestAllowedNextStatuses:
    def test_closed_has_no_exits(self):
        assert allowed_next_statuses("CLOSED", "ESG_LABEL") == []

    def test_esg_approved_has_no_exits(self):
        assert allowed_next_statuses("APPROVED", "ESG_LABEL") == []

    def test_other_approved_can_close(self):
        assert allowed_next_statuses("APPROVED", "LOYALTY_PLUS") == ["CLOSED"]

    def test_under_review_targets(self):
        assert set(allowed_next_statuses("UNDER_REVIEW", "ESG_LABEL")) == {"APPROVED", "REJECTED", "PENDING_INFO"}


class TestLegacyGraph:
    @pytest.mark.parametrize(
        "current,requested",
        [(src, dst) for src, targets in LEGACY_TRANSITIONS.items() for dst in targets],
    )
    def test_valid_edges(self, current, requested):
        plan = resolve_legacy_transition(current, requested)
        assert plan.issue_certificate == (requested == "APPROVED")

    @pytest.mark.parametrize(
        "current,requested",
        [
            (src, dst)
            for src in LEGACY_STATUSES
            for dst in LEGACY_STATUSES
            if src != dst and dst not in LEGACY_TRANSITIONS[src]
        ],
    )
    def test_invalid_edges_raise(self, current, requested):
        with pytest.raises(TransitionError):
            resolve_legacy_transition(current, requested)

    def test_unknown_legacy_status(self):
        with pytest.raises(ValidationError):
            resolve_legacy_transition("SUBMITTED", "PENDING_INFO")


class TestResubmission:
    def test_corrections_requested_returns_to_submitted(self):
        assert resolve_resubmission("CORRECTIONS_REQUESTED").to_status == "SUBMITTED"

    def test_pending_info_returns_to_under_review(self):
        assert resolve_resubmission("PENDING_INFO").to_status == "UNDER_REVIEW"

    @pytest.mark.parametrize("status", ["SUBMITTED", "UNDER_REVIEW", "APPROVED", "CLOSED"])
    def test_other_states_refuse(self, status):
        with pytest.raises(TransitionError):
            resolve_resubmission(status)
