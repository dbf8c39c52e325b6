"""
Chamber Service Portal
Access-control seam.

Provides:
    - AccessPolicy: interface every authorisation backend implements
    - AllowAllPolicy: current policy — every actor may perform every action
    - init_auth(app, policy=None): installs the policy in ``app.extensions``
    - authorize(actor, action, application=None): asks the installed policy
    - resolve_actor(payload, default): acting identity for the request

Every mutating endpoint calls ``authorize`` before it touches a service, so
swapping in a real policy is a one-line change in ``create_app``.

Actions:
    application.submit, application.update, application.resubmit,
    legacy.create, legacy.update, legacy.note, legacy.resubmit
"""

import logging

from flask import current_app, request

from portal.core.exceptions import PermissionDenied, ValidationError

logger = logging.getLogger(__name__)

_EXTENSION_KEY = "access_policy"


class AccessPolicy:
    """Decides whether *actor* may perform *action* on *application*."""

    def is_allowed(self, actor: str, action: str, application=None) -> bool:
        raise NotImplementedError


class AllowAllPolicy(AccessPolicy):
    """Authorises everything."""

    def is_allowed(self, actor: str, action: str, application=None) -> bool:
        return True


def init_auth(app, policy: AccessPolicy | None = None):
    """Install *policy* (default: AllowAllPolicy) on the Flask app."""
    policy = policy or AllowAllPolicy()
    app.extensions[_EXTENSION_KEY] = policy
    app.logger.info("Access policy installed: %s", type(policy).__name__)


def get_policy() -> AccessPolicy:
    return current_app.extensions.get(_EXTENSION_KEY) or AllowAllPolicy()


def authorize(actor: str, action: str, application=None):
    """Raise PermissionDenied unless the installed policy allows the action."""
    if not get_policy().is_allowed(actor, action, application):
        logger.warning(
            "Access denied: actor=%s action=%s", actor, action,
            extra={"actor": actor, "event_type": "access_denied"},
        )
        raise PermissionDenied(actor, action)


def resolve_actor(payload: dict | None = None, default: str = "Staff") -> str:
    """
    Return the acting identity for the current request.

    Order: ``performed_by`` in the JSON body, then the ``X-Actor`` header,
    then *default*.  A value that is present but blank is rejected.
    """
    payload = payload or {}
    if "performed_by" in payload:
        actor = payload.get("performed_by")
    elif "X-Actor" in request.headers:
        actor = request.headers.get("X-Actor")
    else:
        return default
    if not isinstance(actor, str) or not actor.strip():
        raise ValidationError("performed_by must not be blank", details={"performed_by": "blank"})
    return actor.strip()
