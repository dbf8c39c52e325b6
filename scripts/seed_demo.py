"""
Seed a development database with reviewers and a handful of applications
across both record families.

Usage:
    APP_ENV=development python scripts/seed_demo.py
"""

import logging
import sys

if __name__ == "__main__" and __package__ is None:
    import os

    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from portal import create_app
from portal.models import db
from portal.models.application import StaffUser
from portal.services.application_lifecycle import assign_application, transition_application
from portal.services.intake_service import create_submission
from portal.services.legacy_applications import change_legacy_status, create_legacy_application

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)

STAFF = [
    ("Mariam Al Suwaidi", "مريم السويدي", "mariam.alsuwaidi@adcci.ae"),
    ("Omar Haddad", "عمر حداد", "omar.haddad@adcci.ae"),
]


def seed():
    reviewers = []
    for name, name_ar, email in STAFF:
        user = StaffUser.query.filter_by(email=email).first()
        if user is None:
            user = StaffUser(name=name, name_ar=name_ar, email=email)
            db.session.add(user)
        reviewers.append(user)
    db.session.commit()

    esg = create_submission("ESG_LABEL", {
        "submitted_by": "Falcon Logistics LLC",
        "email": "esg@falcon-logistics.ae",
        "sector": "Transport",
        "sub_sector": "Freight",
        "environmental_profile": {"emissions_tracked": True},
    })
    assign_application(esg.id, reviewers[0].id, "Seed")
    transition_application(esg.id, "UNDER_REVIEW", "Seed")

    create_submission("KNOWLEDGE_SHARING", {
        "submitted_by": "Desert Bloom Trading",
        "email": "training@desertbloom.ae",
        "request_type": "TRAINING_QUERY",
        "query_text": "Which export documentation workshops run next quarter?",
    })
    create_submission("CHAMBER_BOOST", {
        "submitted_by": "Pearl Coast Foods",
        "email": "deals@pearlcoast.ae",
        "deal_id": "D-104",
        "deal_title": "20% off cloud accounting",
        "deal_type": "UNLIMITED",
        "vendor_name": "Ledgerly",
        "category": "Software",
    })
    create_submission("BUSINESS_MATCHMAKING", {
        "submitted_by": "Oasis Solar",
        "email": "bd@oasis-solar.ae",
        "subject": "Meet EPC contractors",
        "request_details": "Looking for EPC partners for rooftop installations.",
    })

    legacy = create_legacy_application({
        "applicant_name": "Huda Kareem",
        "organization_name": "Green Sands Construction",
        "email": "huda@greensands.ae",
        "sector": "Construction",
        "description": "Legacy ESG submission.",
    })
    change_legacy_status(legacy.id, "UNDER_REVIEW", "Seed")
    logger.info("Demo data seeded")


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        seed()
