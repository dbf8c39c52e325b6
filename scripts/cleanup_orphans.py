"""
Delete base applications whose service extension row is missing.

Usage:
    APP_ENV=development python scripts/cleanup_orphans.py
    # or
    flask cleanup-orphans
"""

import logging
import sys

if __name__ == "__main__" and __package__ is None:
    import os

    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from portal import create_app
from portal.services.maintenance import cleanup_orphaned_applications

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        result = cleanup_orphaned_applications()
    logger.info("Deleted %d orphaned applications %s", result["deleted"], result["ids"])
