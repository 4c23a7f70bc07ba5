"""
Services package for Refevo.
"""
from refevo.services.errors import (
    WorkflowError,
    NotFound,
    InactiveResource,
    ArchivedResource,
    ConsentRequired,
    AlreadySubmitted,
    ValidationError,
    RateLimited,
    UpstreamFailure
)
