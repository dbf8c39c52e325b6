"""
Shared pytest fixtures for the Chamber Service Portal test suite.

Provides:
    - app: Flask application (session-scoped, in-memory SQLite)
    - _setup_db: table creation/teardown (session-scoped)
    - session: per-test app context with table recreate (autouse)
    - client: Flask test client
    - staff_user: a reviewer row
"""

import pytest

from portal import create_app
from portal.models import db as _db
from portal.models.application import StaffUser


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def staff_user():
    user = StaffUser(name="Mariam Al Suwaidi", name_ar="مريم السويدي", email="mariam@adcci.ae")
    _db.session.add(user)
    _db.session.commit()
    return user

