"""
Database models for Refevo.
"""
from refevo.models.base import db, generate_uuid, generate_token, utcnow
from refevo.models.user import User
from refevo.models.company import Company, Plan
from refevo.models.candidate import Candidate
from refevo.models.reference import (
    ReferenceTemplate, Referee, ReferenceRequest, ReferenceResponse
)
from refevo.models.audit import AuditLog
from refevo.models.email import EmailLog, EarlyAccessEmail, OptOutLog, WaitlistSignup

__all__ = [
    'db',
    'generate_uuid',
    'generate_token',
    'utcnow',
    'User',
    'Company',
    'Plan',
    'Candidate',
    'ReferenceTemplate',
    'Referee',
    'ReferenceRequest',
    'ReferenceResponse',
    'AuditLog',
    'EmailLog',
    'EarlyAccessEmail',
    'OptOutLog',
    'WaitlistSignup',
]
