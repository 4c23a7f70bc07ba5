"""
API blueprints for Refevo.
"""
from refevo.api import (
    candidates_api,
    referees_api,
    audit_api,
    admin_api,
    public_api
)

__all__ = [
    'candidates_api',
    'referees_api',
    'audit_api',
    'admin_api',
    'public_api'
]
