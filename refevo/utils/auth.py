"""
Authentication and authorization utilities for Refevo.
Implements API/page access control and best-effort audit logging.
"""
import re
import json
import logging
from functools import wraps
from flask import request, jsonify, redirect, url_for, render_template, has_request_context
from flask_login import current_user
from refevo.models import db, AuditLog
from refevo.utils.roles import resolve_principal, is_allowed

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def validate_email(email):
    """Validate email shape: local@domain.tld."""
    return bool(email and EMAIL_PATTERN.match(email))


def log_audit(user_id, action, resource_type=None, resource_id=None, details=None,
              company_id=None, actor=None):
    """
    Create an audit log entry.

    Runs in its own commit after the primary action has committed. Any failure
    is rolled back and logged, never raised.
    """
    try:
        ip_address = None
        user_agent = None
        if has_request_context():
            ip_address = request.remote_addr
            if request.user_agent and request.user_agent.string:
                user_agent = request.user_agent.string[:255]

        log = AuditLog(
            user_id=user_id,
            actor=actor,
            company_id=company_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=json.dumps(details, default=str) if details else None,
            ip_address=ip_address,
            user_agent=user_agent
        )
        db.session.add(log)
        db.session.commit()
        return True
    except Exception:
        db.session.rollback()
        logger.exception("Audit log write failed for action %s", action)
        return False


def current_principal():
    """Principal for the logged-in user, or None."""
    if not current_user.is_authenticated:
        return None
    return resolve_principal(current_user)


def api_login_required(f):
    """Decorator for API endpoints that require authentication."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            logger.info("Unauthenticated API request to %s", request.path)
            return jsonify({'error': 'Not authenticated'}), 401
        return f(*args, **kwargs)
    return decorated_function


def api_role_required(resource):
    """API decorator: 401 when logged out, 403 when the role is not allowed on ``resource``."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = current_principal()
            if principal is None:
                return jsonify({'error': 'Not authenticated'}), 401
            if not is_allowed(principal.role, resource):
                logger.warning("Role %s denied access to %s", principal.role.value, resource)
                return jsonify({'error': 'Forbidden'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def role_required(resource):
    """
    Page decorator. Logged-out users are sent to the login page; logged-in
    users without permission get a 403 page rather than a redirect.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = current_principal()
            if principal is None:
                return redirect(url_for('auth.login', next=request.path))
            if not is_allowed(principal.role, resource):
                return render_template('errors/403.html'), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def can_access_company(principal, company_id):
    """Tenant isolation: global admins see every company, everyone else only their own."""
    if principal is None:
        return False
    if is_allowed(principal.role, 'global_admin'):
        return True
    return principal.company_id is not None and principal.company_id == company_id
