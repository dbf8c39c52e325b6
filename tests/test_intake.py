"""Intake: base + extension creation per service kind, validation, voucher codes."""

import json
import random
import re

import pytest

from portal.core.exceptions import ValidationError
from portal.models.application import BaseApplication, GeneralServiceRequest
from portal.models.audit import ActivityLog
from portal.services.intake_service import create_submission, generate_voucher_code

MEMBER = {"submitted_by": "Acme Trading", "email": "ops@acme-trading.ae"}


def _deal(**overrides):
    payload = {
        **MEMBER,
        "deal_id": 104,
        "deal_title": "20% off cloud accounting",
        "deal_type": "LIMITED",
        "vendor_name": "Ledger ly",
        "category": "Software",
        "intended_use": "Bookkeeping for two branches",
    }
    payload.update(overrides)
    return payload


class TestCommonRules:
    def test_unknown_service_type(self):
        with pytest.raises(ValidationError):
            create_submission("GOLF_BOOKING", dict(MEMBER))

    @pytest.mark.parametrize("email", [None, "", "not-an-email", "ops@"])
    def test_email_required_and_valid(self, email):
        with pytest.raises(ValidationError):
            create_submission("LOYALTY_PLUS", {**MEMBER, "email": email, "request_details": "x"})
        assert BaseApplication.query.count() == 0

    def test_submitter_name_required(self):
        with pytest.raises(ValidationError):
            create_submission("LOYALTY_PLUS", {"email": "ops@acme-trading.ae", "request_details": "x"})

    @pytest.mark.parametrize("field", ["submitted_by", "company_name"])
    def test_submitter_name_must_be_text(self, field):
        payload = {field: 123, "email": "ops@acme-trading.ae", "request_details": "x"}
        with pytest.raises(ValidationError) as exc:
            create_submission("LOYALTY_PLUS", payload)
        assert exc.value.details == {field: "must be a string"}
        assert BaseApplication.query.count() == 0

    def test_company_name_alias(self):
        app = create_submission("LOYALTY_PLUS", {
            "company_name": "Acme Trading", "email": "ops@acme-trading.ae", "request_details": "x",
        })
        assert app.submitted_by == "Acme Trading"

    def test_one_submitted_entry(self):
        app = create_submission("LOYALTY_PLUS", {**MEMBER, "request_details": "x"})
        entries = ActivityLog.query.filter_by(application_id=app.id).all()
        assert len(entries) == 1
        assert entries[0].action == "ADCCI Loyalty Plus request submitted"
        assert entries[0].performed_by == "Acme Trading"


class TestEsg:
    def test_extension_and_profiles(self):
        app = create_submission("ESG_LABEL", {
            **MEMBER,
            "sector": "Energy",
            "environmental_profile": {"scope1": 120},
            "social_profile": '{"headcount": 40}',
        })
        ext = app.esg_application
        assert ext is not None
        assert json.loads(ext.environmental_profile) == {"scope1": 120}
        assert json.loads(ext.social_profile) == {"headcount": 40}
        assert ext.eoi_submitted_at is not None
        assert app.extension is ext

    def test_profile_must_be_object(self):
        with pytest.raises(ValidationError):
            create_submission("ESG_LABEL", {**MEMBER, "governance_profile": "[1, 2]"})


class TestKnowledgeSharing:
    def test_calendar_booking(self):
        app = create_submission("KNOWLEDGE_SHARING", {
            **MEMBER,
            "request_type": "CALENDAR_BOOKING",
            "program_name": "Export Readiness",
            "session_dates": ["2026-03-01", "2026-03-08"],
            "number_of_attendees": "3",
        })
        ext = app.knowledge_sharing_application
        assert ext.number_of_attendees == 3
        assert json.loads(ext.session_dates) == ["2026-03-01", "2026-03-08"]
        entry = ActivityLog.query.filter_by(application_id=app.id).one()
        assert entry.action == "Calendar booking submitted for Export Readiness"

    @pytest.mark.parametrize("length,ok", [(19, False), (20, True), (25, True)])
    def test_training_query_min_length(self, length, ok):
        payload = {**MEMBER, "request_type": "TRAINING_QUERY", "query_text": "q" * length}
        if ok:
            assert create_submission("KNOWLEDGE_SHARING", payload).status == "SUBMITTED"
        else:
            with pytest.raises(ValidationError):
                create_submission("KNOWLEDGE_SHARING", payload)

    @pytest.mark.parametrize("field,value", [("query_text", 12345678901234567890123), ("request_type", ["TRAINING_QUERY"])])
    def test_non_text_values_rejected(self, field, value):
        payload = {**MEMBER, "request_type": "TRAINING_QUERY", "query_text": "q" * 25, field: value}
        with pytest.raises(ValidationError):
            create_submission("KNOWLEDGE_SHARING", payload)

    def test_unknown_request_type(self):
        with pytest.raises(ValidationError):
            create_submission("KNOWLEDGE_SHARING", {**MEMBER, "request_type": "WEBINAR"})

    def test_attendees_must_be_integer(self):
        with pytest.raises(ValidationError):
            create_submission("KNOWLEDGE_SHARING", {
                **MEMBER, "request_type": "CALENDAR_BOOKING", "number_of_attendees": "many",
            })


class TestChamberBoost:
    def test_limited_deal_waits_for_review(self):
        app = create_submission("CHAMBER_BOOST", _deal())
        assert app.status == "SUBMITTED"
        assert app.chamber_boost_application.voucher_code is None
        assert app.chamber_boost_application.deal_id == "104"

    def test_limited_deal_needs_intended_use(self):
        with pytest.raises(ValidationError):
            create_submission("CHAMBER_BOOST", _deal(intended_use=""))

    def test_unlimited_deal_auto_approved_with_voucher(self):
        app = create_submission("CHAMBER_BOOST", _deal(deal_type="UNLIMITED", intended_use=None))
        ext = app.chamber_boost_application
        assert app.status == "APPROVED"
        assert app.reviewed_by == "System"
        assert app.reviewed_at is not None
        assert ext.fulfilled_at is not None
        assert re.match(r"^ADCCI-LEDG-[A-Z0-9]{6}$", ext.voucher_code)
        assert app.certificate is None

    def test_missing_deal_fields(self):
        with pytest.raises(ValidationError):
            create_submission("CHAMBER_BOOST", _deal(vendor_name=None))

    def test_vendor_name_must_be_text(self):
        with pytest.raises(ValidationError):
            create_submission("CHAMBER_BOOST", _deal(deal_type="UNLIMITED", vendor_name=42))

    def test_voucher_code_deterministic_with_seed(self):
        a = generate_voucher_code("Blue Wave", rng=random.Random(7))
        b = generate_voucher_code("Blue Wave", rng=random.Random(7))
        assert a == b
        assert a.startswith("ADCCI-BLUE-")


class TestGeneralRequests:
    @pytest.mark.parametrize("service_type", [
        "BUSINESS_MATCHMAKING", "BUSINESS_DEVELOPMENT", "BUSINESS_ENABLEMENT",
        "POLICY_ADVOCACY", "LOYALTY_PLUS", "AD_CONNECT_CONCIERGE",
    ])
    def test_general_extension(self, service_type):
        app = create_submission(service_type, {**MEMBER, "subject": "Hello", "request_details": "Details"})
        ext = app.general_request
        assert isinstance(ext, GeneralServiceRequest)
        assert ext.service_type == service_type
        assert app.extension is ext

    def test_details_required(self):
        with pytest.raises(ValidationError):
            create_submission("BUSINESS_MATCHMAKING", {**MEMBER, "subject": "Hello"})
