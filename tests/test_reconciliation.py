"""
Merge layer tests: one listing over base and legacy records with id
de-duplication, cross-family pagination, facets and filters.
"""

from datetime import UTC, datetime, timedelta

import pytest

from portal.core.exceptions import NotFoundError, ValidationError
from portal.models import db
from portal.models.application import BaseApplication
from portal.models.legacy import LegacyApplication
from portal.services import activity_ledger
from portal.services.application_lifecycle import transition_application, update_application
from portal.services.intake_service import create_submission
from portal.services.legacy_applications import change_legacy_status, create_legacy_application
from portal.services.maintenance import migrate_legacy_applications
from portal.services.reconciliation import (
    ApplicationFilter,
    get_application,
    list_applications,
    resolve_sort,
)

MEMBER = "ops@acme-trading.ae"


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════


def _base(service_type="POLICY_ADVOCACY", email=MEMBER, name="Acme Trading", **extra):
    payload = {"submitted_by": name, "email": email, "request_details": "Details"}
    if service_type == "ESG_LABEL":
        payload.pop("request_details")
    payload.update(extra)
    return create_submission(service_type, payload)


def _legacy(email=MEMBER, org="Acme Trading"):
    return create_legacy_application({
        "applicant_name": "Sara Nasser",
        "organization_name": org,
        "email": email,
        "sub_sector": "Logistics",
    })


def _all_ids(flt, per_page=2):
    ids, page = [], 1
    while True:
        result = list_applications(flt, page=page, per_page=per_page)
        ids.extend(r["id"] for r in result["rows"])
        if page >= result["total_pages"]:
            return ids, result
        page += 1


# ═════════════════════════════════════════════════════════════════════════════
# Merge completeness
# ═════════════════════════════════════════════════════════════════════════════


class TestMergeCompleteness:
    def test_every_record_exactly_once_across_pages(self):
        base_ids = {_base().id for _ in range(3)}
        legacy_ids = {_legacy().id for _ in range(2)}

        ids, result = _all_ids(ApplicationFilter(email=MEMBER), per_page=2)
        assert result["total_count"] == 5
        assert len(ids) == 5
        assert set(ids) == base_ids | legacy_ids

    def test_base_rows_come_first(self):
        _legacy()
        base = _base()
        rows = list_applications(ApplicationFilter(), page=1, per_page=10)["rows"]
        assert rows[0]["id"] == base.id
        assert rows[0]["is_legacy"] is False
        assert rows[1]["is_legacy"] is True

    def test_migrated_legacy_not_duplicated(self):
        legacy = _legacy()
        other = _legacy(email="other@acme-trading.ae")
        migrate_legacy_applications()

        result = list_applications(ApplicationFilter(), page=1, per_page=50)
        ids = [r["id"] for r in result["rows"]]
        assert sorted(ids) == sorted({legacy.id, other.id})
        assert all(not r["is_legacy"] for r in result["rows"])
        assert result["total_count"] == 2

    def test_empty_page_past_end(self):
        _base()
        result = list_applications(ApplicationFilter(), page=5, per_page=10)
        assert result["rows"] == []
        assert result["total_count"] == 1
        assert result["total_pages"] == 1


# ═════════════════════════════════════════════════════════════════════════════
# Row shape
# ═════════════════════════════════════════════════════════════════════════════


class TestRowShape:
    def test_base_row_fields(self):
        app = _base("ESG_LABEL", sub_sector="Freight")
        row = list_applications(ApplicationFilter(), page=1, per_page=10)["rows"][0]
        assert row["id"] == app.id
        assert row["application_id"] == app.id[:8] + "..."
        assert row["service_name_en"] == "Chamber ESG Label"
        assert row["department"] == "Business Connect & Services"
        assert row["status_label_en"] == "Submitted"
        assert row["status_color"] == "blue"
        assert row["request_summary"] == "ESG Label Application — Freight"
        assert row["sla_status"]["bucket"] == "N/A"
        assert row["legacy_status"] is None

    def test_legacy_row_maps_corrections_requested(self):
        legacy = _legacy()
        change_legacy_status(legacy.id, "UNDER_REVIEW", "Staff")
        change_legacy_status(legacy.id, "CORRECTIONS_REQUESTED", "Staff")
        row = list_applications(ApplicationFilter(), page=1, per_page=10)["rows"][0]
        assert row["status"] == "PENDING_INFO"
        assert row["legacy_status"] == "CORRECTIONS_REQUESTED"
        assert row["service_type"] == "ESG_LABEL"
        assert row["is_legacy"] is True

    def test_training_query_summary_truncated(self):
        create_submission("KNOWLEDGE_SHARING", {
            "submitted_by": "Acme Trading", "email": MEMBER,
            "request_type": "TRAINING_QUERY", "query_text": "q" * 120,
        })
        row = list_applications(ApplicationFilter(), page=1, per_page=10)["rows"][0]
        assert row["request_summary"] == "q" * 80 + "..."
        assert row["sla_status"]["sla_days"] == 1

    def test_generic_summary_falls_back_to_service_name(self):
        _base("LOYALTY_PLUS")
        row = list_applications(ApplicationFilter(), page=1, per_page=10)["rows"][0]
        assert row["request_summary"] == "ADCCI Loyalty Plus"


# ═════════════════════════════════════════════════════════════════════════════
# Facets
# ═════════════════════════════════════════════════════════════════════════════


class TestFacetCounts:
    def test_facets_ignore_status_and_service_filters(self):
        _base("POLICY_ADVOCACY")
        _base("LOYALTY_PLUS")
        _legacy()

        flt = ApplicationFilter(email=MEMBER, service_types=["LOYALTY_PLUS"])
        result = list_applications(flt, page=1, per_page=10)
        assert result["total_count"] == 1
        facets = result["facet_counts"]
        assert facets["by_service"] == {"POLICY_ADVOCACY": 1, "LOYALTY_PLUS": 1, "ESG_LABEL": 1}
        assert facets["by_status"] == {"SUBMITTED": 3}
        assert facets["by_department"] == {
            "Advocacy & Government Affairs": 1,
            "Business Connect & Services": 2,
        }

    def test_facets_scoped_by_submitter(self):
        _base()
        _base(email="someone@elsewhere.ae")
        facets = list_applications(ApplicationFilter(email=MEMBER))["facet_counts"]
        assert facets["by_service"] == {"POLICY_ADVOCACY": 1}

    def test_legacy_corrections_folded_into_pending_info(self):
        legacy = _legacy()
        change_legacy_status(legacy.id, "UNDER_REVIEW", "Staff")
        change_legacy_status(legacy.id, "CORRECTIONS_REQUESTED", "Staff")
        facets = list_applications(ApplicationFilter())["facet_counts"]
        assert facets["by_status"] == {"PENDING_INFO": 1}


# ═════════════════════════════════════════════════════════════════════════════
# Filters & sorting
# ═════════════════════════════════════════════════════════════════════════════


class TestFilters:
    def test_department_resolves_to_service_kinds(self):
        _base("POLICY_ADVOCACY")
        _base("LOYALTY_PLUS")
        _legacy()
        flt = ApplicationFilter(department="Advocacy & Government Affairs")
        rows = list_applications(flt)["rows"]
        assert [r["service_type"] for r in rows] == ["POLICY_ADVOCACY"]

    def test_department_intersects_service_types(self):
        _base("POLICY_ADVOCACY")
        flt = ApplicationFilter(department="Member Affairs", service_types=["POLICY_ADVOCACY"])
        assert list_applications(flt)["total_count"] == 0

    def test_unknown_department(self):
        with pytest.raises(ValidationError):
            list_applications(ApplicationFilter(department="Finance"))

    def test_unknown_service_type(self):
        with pytest.raises(ValidationError):
            list_applications(ApplicationFilter(service_types=["GOLF"]))

    def test_status_filter_applies_to_legacy(self):
        legacy = _legacy()
        _base()
        change_legacy_status(legacy.id, "UNDER_REVIEW", "Staff")
        rows = list_applications(ApplicationFilter(statuses=["UNDER_REVIEW"]))["rows"]
        assert [r["id"] for r in rows] == [legacy.id]

    def test_search_by_name_and_id(self):
        target = _base(name="Zenith Marine")
        _base(name="Acme Trading")
        assert [r["id"] for r in list_applications(ApplicationFilter(search="zenith"))["rows"]] == [target.id]
        assert [r["id"] for r in list_applications(ApplicationFilter(search=target.id[:8]))["rows"]] == [target.id]

    def test_date_range(self):
        old = _base()
        old.submitted_at = datetime(2025, 1, 5, 10, tzinfo=UTC)
        db.session.commit()
        recent = _base()

        flt = ApplicationFilter.from_args({"date_to": "2025-01-05"})
        assert [r["id"] for r in list_applications(flt)["rows"]] == [old.id]
        flt = ApplicationFilter.from_args({"date_from": "06.01.2025"})
        assert [r["id"] for r in list_applications(flt)["rows"]] == [recent.id]

    def test_invalid_date(self):
        with pytest.raises(ValidationError):
            ApplicationFilter.from_args({"date_from": "yesterday"})

    def test_from_args_splits_lists(self):
        flt = ApplicationFilter.from_args({"service_type": "ESG_LABEL, LOYALTY_PLUS", "status": "SUBMITTED"})
        assert flt.service_types == ["ESG_LABEL", "LOYALTY_PLUS"]
        assert flt.statuses == ["SUBMITTED"]


class TestSorting:
    @pytest.mark.parametrize("sort,order,expected", [
        ("submitted_at", None, ("submitted_at", "desc")),
        ("status", None, ("status", "asc")),
        ("submitted_by", "desc", ("submitted_by", "desc")),
        ("oldest", None, ("submitted_at", "asc")),
        ("priority", None, ("submitted_at", "desc")),
        (None, None, ("submitted_at", "desc")),
    ])
    def test_resolve_sort_allow_list(self, sort, order, expected):
        assert resolve_sort(sort, order) == expected

    def test_newest_first_by_default(self):
        first = _base()
        first.submitted_at = datetime.now(UTC) - timedelta(days=2)
        db.session.commit()
        second = _base()
        rows = list_applications(ApplicationFilter())["rows"]
        assert [r["id"] for r in rows] == [second.id, first.id]

    def test_status_sorted_by_workflow_order(self):
        a, b = _base(), _base()
        transition_application(a.id, "UNDER_REVIEW", "Staff")
        rows = list_applications(ApplicationFilter(), sort="status")["rows"]
        assert [r["status"] for r in rows] == ["SUBMITTED", "UNDER_REVIEW"]
        assert rows[0]["id"] == b.id


# ═════════════════════════════════════════════════════════════════════════════
# Detail view
# ═════════════════════════════════════════════════════════════════════════════


class TestDetail:
    def test_staff_sees_internal_entries_submitter_does_not(self):
        app = _base()
        update_application(app.id, {"internal_notes": "Flag for director"}, "Staff")
        activity_ledger.append(app.id, app.service_type, "Reviewed documents", "Staff", "INTERNAL: verify licence")

        staff = get_application(app.id, "staff")
        member = get_application(app.id, "submitter", submitter_email=MEMBER)

        assert staff["internal_notes"] == "Flag for director"
        assert len(staff["activity"]) == 3
        assert "available_transitions" in staff
        assert "internal_notes" not in member
        assert [e["action"] for e in member["activity"]] == ["Policy Advocacy request submitted"]

    def test_activity_newest_first(self):
        app = _base()
        transition_application(app.id, "UNDER_REVIEW", "Staff")
        activity = get_application(app.id, "staff")["activity"]
        assert activity[0]["action"] == "Status changed from SUBMITTED to UNDER_REVIEW"

    def test_other_submitter_gets_not_found(self):
        app = _base()
        with pytest.raises(NotFoundError):
            get_application(app.id, "submitter", submitter_email="someone@elsewhere.ae")

    def test_legacy_detail_filters_internal_notes(self):
        legacy = _legacy()
        from portal.services.legacy_applications import add_review_note
        add_review_note(legacy.id, "Internal: board member company", "STAFF")
        add_review_note(legacy.id, "Please upload your licence", "STAFF")

        staff = get_application(legacy.id, "staff")
        member = get_application(legacy.id, "submitter", submitter_email=MEMBER)
        assert len(staff["review_notes"]) == 3
        assert len(member["review_notes"]) == 2
        assert member["is_legacy"] is True

    def test_migrated_record_resolves_to_base(self):
        legacy = _legacy()
        migrate_legacy_applications()
        detail = get_application(legacy.id, "staff")
        assert detail["is_legacy"] is False
        assert db.session.get(BaseApplication, legacy.id) is not None
        assert db.session.get(LegacyApplication, legacy.id) is not None

    def test_unknown_id(self):
        with pytest.raises(NotFoundError):
            get_application("missing", "staff")
