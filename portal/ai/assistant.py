"""
Application assistant — narrow interface for suggested text and a score.

Usage:
    from portal.ai import get_assistant
    result = get_assistant().precheck({"description": "...", "sector": "Energy"})
    result["text"], result["score"]
"""

import logging
import random
from abc import ABC, abstractmethod

from flask import current_app

logger = logging.getLogger(__name__)

_EXTENSION_KEY = "application_assistant"


class ApplicationAssistant(ABC):
    """Produces suggested text and a 0–100 score from request context."""

    @abstractmethod
    def precheck(self, context: dict) -> dict:
        """
        Completeness feedback on a draft application.

        Returns:
            dict with keys: text, score
        """
        ...

    @abstractmethod
    def review_assist(self, application: dict) -> dict:
        """
        Reviewer hint for an application detail view.

        Returns:
            dict with keys: text, score
        """
        ...


# ── Canned assistant (no external service) ───────────────────────────────────

_PRECHECK_RESPONSES = (
    "Your application is comprehensive and well-documented. Consider adding more "
    "details about your supply chain sustainability practices.",
    "The application lacks specific quantitative KPIs for measuring environmental "
    "impact. Please include data on emissions, water usage, and waste reduction targets.",
    "Strong governance practices noted. Add more information about social "
    "responsibility metrics such as diversity ratios and worker safety statistics.",
    "Good foundation for ESG certification. Include third-party certifications, audit "
    "results, and a timeline for sustainability goals.",
)

_SECTOR_HINTS = {
    "Energy": " Highlight renewable energy adoption and grid decarbonization efforts.",
    "Manufacturing": " Include circular economy practices and sustainable sourcing.",
    "Construction": " Emphasize green building certifications and sustainable materials.",
    "Agriculture": " Detail organic certification status and water conservation measures.",
    "Technology": " Address e-waste management and data center energy efficiency.",
}

_BRIEF_DESCRIPTION_CHARS = 200


class CannedAssistant(ApplicationAssistant):
    """
    Returns canned or randomized content.  Pass a seeded ``random.Random``
    for deterministic output.
    """

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def precheck(self, context: dict) -> dict:
        context = context or {}
        text = self._rng.choice(_PRECHECK_RESPONSES)
        text += _SECTOR_HINTS.get(context.get("sector") or "", "")
        description = context.get("description") or ""
        score = self._rng.randint(60, 95)
        if len(description) < _BRIEF_DESCRIPTION_CHARS:
            text = ("Your application description is quite brief. Please describe your "
                    "environmental, social and governance practices in more detail. ") + text
            score = min(score, 55)
        return {"text": text, "score": score}

    def review_assist(self, application: dict) -> dict:
        application = application or {}
        status = application.get("status", "SUBMITTED")
        summary = application.get("request_summary") or application.get("service_type", "request")
        text = f"{summary}: currently {status}. Verify submitted details before changing status."
        return {"text": text, "score": self._rng.randint(50, 90)}


def init_assistant(app, assistant: ApplicationAssistant | None = None):
    app.extensions[_EXTENSION_KEY] = assistant or CannedAssistant()


def get_assistant() -> ApplicationAssistant:
    return current_app.extensions.get(_EXTENSION_KEY) or CannedAssistant()
