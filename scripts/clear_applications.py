"""
Purge every application record (both families) with certificates, review
notes and activity logs.  Staff users are kept.  For environment resets only.

Usage:
    APP_ENV=development python scripts/clear_applications.py --yes
    # or
    flask reset-applications --yes
"""

import logging
import sys

if __name__ == "__main__" and __package__ is None:
    import os

    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from portal import create_app
from portal.services.maintenance import record_counts, reset_all_applications

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Delete ALL application data")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation and purge")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        if not args.yes:
            for table, count in record_counts().items():
                logger.info("%-35s %6d", table, count)
            logger.info("Dry run: pass --yes to delete the rows above")
            sys.exit(0)
        result = reset_all_applications()
        for table, count in result["before"].items():
            logger.info("%-35s %6d -> %d", table, count, result["after"][table])
