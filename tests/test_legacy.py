"""
Legacy ESG record family: creation, the five-state graph, review notes,
approval certificates and the submitter resubmission loop.
"""

import pytest

from portal.core.exceptions import NotFoundError, TransitionError, ValidationError
from portal.models.certificate import Certificate
from portal.models.legacy import ReviewNote
from portal.services.legacy_applications import (
    RESUBMITTED_NOTE,
    SUBMITTED_NOTE,
    add_review_note,
    change_legacy_status,
    create_legacy_application,
    legacy_to_dict,
    resubmit_legacy_application,
)

STAFF = "Mariam Al Suwaidi"


def _legacy(**overrides):
    payload = {
        "applicant_name": "Huda Rahman",
        "organization_name": "Gulf Fresh Foods",
        "email": "huda@gulffresh.ae",
        "sector": "Agriculture",
        "environmental_profile": {"water_use": "low"},
    }
    payload.update(overrides)
    return create_legacy_application(payload)


def _notes(legacy_id):
    return ReviewNote.query.filter_by(application_id=legacy_id).order_by(ReviewNote.id).all()


class TestCreate:
    def test_creates_with_system_note(self):
        legacy = _legacy()
        assert legacy.status == "SUBMITTED"
        notes = _notes(legacy.id)
        assert [(n.author_type, n.note) for n in notes] == [("SYSTEM", SUBMITTED_NOTE)]

    def test_requires_names_and_email(self):
        with pytest.raises(ValidationError):
            _legacy(organization_name="")
        with pytest.raises(ValidationError):
            _legacy(email="nobody")

    def test_names_must_be_text(self):
        with pytest.raises(ValidationError):
            _legacy(applicant_name=["Huda"])

    def test_detail_shape(self):
        d = legacy_to_dict(_legacy())
        assert d["mapped_status"] == "SUBMITTED"
        assert d["environmental_profile"] == {"water_use": "low"}
        assert d["social_profile"] == {}
        assert d["certificate"] is None
        assert len(d["review_notes"]) == 1


class TestStatusChanges:
    def test_walk_to_approval_issues_certificate(self):
        legacy = _legacy()
        change_legacy_status(legacy.id, "UNDER_REVIEW", STAFF)
        change_legacy_status(legacy.id, "APPROVED", STAFF, note="All criteria met")

        assert legacy.status == "APPROVED"
        assert legacy.certificate is not None
        assert Certificate.query.filter_by(legacy_application_id=legacy.id).count() == 1
        notes = [n.note for n in _notes(legacy.id)]
        assert notes[1] == f"Status changed from SUBMITTED to UNDER_REVIEW by {STAFF}"
        assert notes[2] == f"Status changed from UNDER_REVIEW to APPROVED by {STAFF}: All criteria met"

    def test_rejection_has_no_certificate(self):
        legacy = _legacy()
        change_legacy_status(legacy.id, "UNDER_REVIEW", STAFF)
        change_legacy_status(legacy.id, "REJECTED", STAFF)
        assert legacy.certificate is None

    def test_illegal_transition(self):
        legacy = _legacy()
        with pytest.raises(TransitionError):
            change_legacy_status(legacy.id, "APPROVED", STAFF)
        assert legacy.status == "SUBMITTED"
        assert len(_notes(legacy.id)) == 1

    def test_unknown_status(self):
        legacy = _legacy()
        with pytest.raises(ValidationError):
            change_legacy_status(legacy.id, "PENDING_INFO", STAFF)

    def test_noop_writes_nothing(self):
        legacy = _legacy()
        change_legacy_status(legacy.id, "SUBMITTED", STAFF)
        assert len(_notes(legacy.id)) == 1

    def test_blank_actor(self):
        legacy = _legacy()
        with pytest.raises(ValidationError):
            change_legacy_status(legacy.id, "UNDER_REVIEW", "  ")

    def test_missing_record(self):
        with pytest.raises(NotFoundError):
            change_legacy_status("does-not-exist", "UNDER_REVIEW", STAFF)


class TestResubmission:
    def _corrections(self):
        legacy = _legacy()
        change_legacy_status(legacy.id, "UNDER_REVIEW", STAFF)
        change_legacy_status(legacy.id, "CORRECTIONS_REQUESTED", STAFF, note="Add licence number")
        return legacy

    def test_resubmit_updates_fields(self):
        legacy = self._corrections()
        resubmit_legacy_application(
            legacy.id,
            {"trade_license_number": "CN-1234567", "social_profile": {"headcount": 18}},
            submitter_email="huda@gulffresh.ae",
        )
        assert legacy.status == "SUBMITTED"
        assert legacy.trade_license_number == "CN-1234567"
        assert legacy.profiles()["social_profile"] == {"headcount": 18}
        assert _notes(legacy.id)[-1].note == RESUBMITTED_NOTE

    def test_resubmit_rejects_non_text_fields(self):
        legacy = self._corrections()
        with pytest.raises(ValidationError):
            resubmit_legacy_application(legacy.id, {"sector": 7})
        assert legacy.status == "CORRECTIONS_REQUESTED"

    def test_resubmit_requires_corrections_state(self):
        legacy = _legacy()
        with pytest.raises(TransitionError):
            resubmit_legacy_application(legacy.id, {})

    def test_resubmit_hidden_from_other_email(self):
        legacy = self._corrections()
        with pytest.raises(NotFoundError):
            resubmit_legacy_application(legacy.id, {}, submitter_email="someone@else.ae")
        assert legacy.status == "CORRECTIONS_REQUESTED"


class TestNotes:
    def test_add_note(self):
        legacy = _legacy()
        note = add_review_note(legacy.id, "Called the applicant", "STAFF")
        assert note.note == "Called the applicant"
        assert legacy_to_dict(legacy)["review_notes"][0]["note"] == "Called the applicant"

    @pytest.mark.parametrize("note,author_type", [("", "STAFF"), ("ok", "ROBOT")])
    def test_invalid_note(self, note, author_type):
        legacy = _legacy()
        with pytest.raises(ValidationError):
            add_review_note(legacy.id, note, author_type)
