"""Activity ledger: append rules, reverse-chronological reads, audience filter, feed."""

import pytest

from portal.models import db
from portal.models.audit import ActivityLog
from portal.services import activity_ledger
from portal.services.application_lifecycle import transition_application
from portal.services.intake_service import create_submission


def _app(email="ops@acme-trading.ae", name="Acme Trading"):
    return create_submission("BUSINESS_DEVELOPMENT", {
        "submitted_by": name, "email": email, "request_details": "Market entry support",
    })


class TestAppend:
    def test_entry_fields(self):
        app = _app()
        entry = activity_ledger.append(app.id, app.service_type, "Called applicant", "Omar", "left voicemail")
        assert entry.id is not None
        stored = db.session.get(ActivityLog, entry.id)
        assert stored.performed_by == "Omar"
        assert stored.notes == "left voicemail"
        assert stored.performed_at is not None

    @pytest.mark.parametrize("action,actor", [("", "Omar"), ("Called", ""), (None, "Omar")])
    def test_empty_action_or_actor_skipped(self, action, actor):
        app = _app()
        assert activity_ledger.append(app.id, app.service_type, action, actor) is None
        assert ActivityLog.query.filter_by(application_id=app.id).count() == 1

    def test_failed_write_returns_none(self):
        assert activity_ledger.append("no-such-application", "ESG_LABEL", "Orphan", "Omar") is None


class TestReads:
    def test_newest_first_with_limit(self):
        app = _app()
        for status in ("UNDER_REVIEW", "PENDING_INFO", "UNDER_REVIEW"):
            transition_application(app.id, status, "Staff")

        entries = activity_ledger.list_for_application(app.id)
        assert len(entries) == 4
        assert entries[0]["action"] == "Status changed from PENDING_INFO to UNDER_REVIEW"
        assert entries[-1]["action"] == "Business Development Services request submitted"

        capped = activity_ledger.list_for_application(app.id, limit=2)
        assert [e["id"] for e in capped] == [e["id"] for e in entries[:2]]

    def test_internal_marker_case_insensitive(self):
        app = _app()
        activity_ledger.append(app.id, app.service_type, "INTERNAL review", "Staff")
        activity_ledger.append(app.id, app.service_type, "Checked", "Staff", "see Internal memo")
        activity_ledger.append(app.id, app.service_type, "Documents received", "Staff")

        staff = activity_ledger.list_for_application(app.id, "staff")
        member = activity_ledger.list_for_application(app.id, "submitter")
        assert len(staff) == 4
        assert [e["action"] for e in member] == [
            "Documents received",
            "Business Development Services request submitted",
        ]

    def test_unknown_audience(self):
        with pytest.raises(ValueError):
            activity_ledger.list_for_application("x", "public")


class TestActivityFeed:
    def test_feed_is_paginated_and_denormalized(self):
        first = _app(email="a@acme-trading.ae", name="Alpha")
        second = _app(email="b@acme-trading.ae", name="Beta")
        transition_application(first.id, "UNDER_REVIEW", "Staff")

        page1 = activity_ledger.activity_feed(page=1, per_page=2)
        assert page1["total"] == 3
        assert page1["pages"] == 2
        top = page1["items"][0]
        assert top["action"] == "Status changed from SUBMITTED to UNDER_REVIEW"
        assert top["submitted_by"] == "Alpha"
        assert top["submitted_by_email"] == "a@acme-trading.ae"
        assert page1["items"][1]["application_id"] == second.id

        page2 = activity_ledger.activity_feed(page=2, per_page=2)
        assert [i["application_id"] for i in page2["items"]] == [first.id]
