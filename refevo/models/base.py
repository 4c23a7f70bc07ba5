"""
Base database setup for Refevo.
"""
import secrets
import uuid
from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def generate_uuid():
    """Generate a UUID string for primary keys."""
    return str(uuid.uuid4())


def generate_token():
    """Generate an opaque single-use URL token."""
    return secrets.token_urlsafe(32)


def utcnow():
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    return value.isoformat() if value else None
