"""
Certificate issuer.

Mints the ``ESG-<year>-<NNNN>`` certificate that accompanies an approval of
a certificate-bearing application.  Called by the lifecycle services inside
their open transaction; this module never commits, so a failure here rolls
back together with the status change.

Numbers are random, not sequenced; uniqueness is enforced by the database
and a collision surfaces as a failed approval.
"""

import logging
import random
from datetime import UTC, datetime, timedelta

from flask import current_app

from portal.core.exceptions import ConflictError
from portal.models import db
from portal.models.certificate import Certificate

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_DAYS = 365


def generate_certificate_number(now: datetime | None = None, rng=random) -> str:
    """Return ``ESG-<4-digit year>-<zero-padded 0..9999>``."""
    now = now or datetime.now(UTC)
    return f"ESG-{now.year}-{rng.randint(0, 9999):04d}"


def _validity_days() -> int:
    return int(current_app.config.get("CERTIFICATE_VALIDITY_DAYS", DEFAULT_VALIDITY_DAYS))


def issue_certificate(
    *,
    base_application_id: str | None = None,
    legacy_application_id: str | None = None,
    now: datetime | None = None,
) -> Certificate:
    """
    Create the certificate for exactly one owning application and flush it.

    Raises:
        ValueError: neither or both owners given.
        ConflictError: the owner already has a certificate.
    """
    if (base_application_id is None) == (legacy_application_id is None):
        raise ValueError("Exactly one of base_application_id / legacy_application_id is required")

    owner_filter = (
        Certificate.base_application_id == base_application_id
        if base_application_id is not None
        else Certificate.legacy_application_id == legacy_application_id
    )
    if db.session.query(Certificate.id).filter(owner_filter).first() is not None:
        owner = base_application_id or legacy_application_id
        raise ConflictError("Certificate", "application_id", owner)

    issued_at = now or datetime.now(UTC)
    cert = Certificate(
        certificate_number=generate_certificate_number(issued_at),
        issued_at=issued_at,
        valid_until=issued_at + timedelta(days=_validity_days()),
        base_application_id=base_application_id,
        legacy_application_id=legacy_application_id,
    )
    db.session.add(cert)
    db.session.flush()

    logger.info(
        "Certificate %s issued", cert.certificate_number,
        extra={
            "event_type": "certificate_issued",
            "application_id": base_application_id or legacy_application_id,
            "certificate_number": cert.certificate_number,
        },
    )
    return cert
