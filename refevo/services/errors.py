"""
Workflow errors raised by the service layer.

Views turn these into rendered page states; API blueprints turn them into
JSON ``{'error': message}`` responses using ``status_code``.
"""
from refevo.utils.constants import GENERIC_FAILURE_MESSAGE, INVALID_LINK_MESSAGE


class WorkflowError(Exception):
    """Base class for expected workflow failures."""
    status_code = 400
    default_message = GENERIC_FAILURE_MESSAGE

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(WorkflowError):
    """Unknown token or id."""
    status_code = 404
    default_message = INVALID_LINK_MESSAGE


class InactiveResource(WorkflowError):
    """Template or tenant exists but is switched off."""
    status_code = 409
    default_message = "This resource is no longer active."


class ArchivedResource(WorkflowError):
    status_code = 410
    default_message = "This item has been archived."


class ConsentRequired(WorkflowError):
    status_code = 409
    default_message = "Consent has not been granted for this candidate."


class AlreadySubmitted(WorkflowError):
    status_code = 409
    default_message = "This reference has already been submitted."


class ValidationError(WorkflowError):
    """Input rejected; ``errors`` maps a row index or field name to messages."""
    status_code = 400
    default_message = "Please correct the highlighted fields."

    def __init__(self, message=None, errors=None):
        super().__init__(message)
        self.errors = errors or {}


class RateLimited(WorkflowError):
    status_code = 429


class UpstreamFailure(WorkflowError):
    """Database or provider failure; safe to retry."""
    status_code = 502
