"""
Chamber Service Portal
Assistant collaborators.

The lifecycle never depends on assistant output; the blueprints only relay
``{text, score}`` to the caller.
"""

from portal.ai.assistant import ApplicationAssistant, CannedAssistant, get_assistant, init_assistant

__all__ = ["ApplicationAssistant", "CannedAssistant", "get_assistant", "init_assistant"]
