"""
Resend governance for pending reference requests.

The permission gate aggregates across all of a candidate's requests while the
counters it reads are kept per request. ``can_resend`` and ``apply_resend``
keep those two halves separate.
"""
import logging
from datetime import timedelta
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from refevo.models import db, ReferenceRequest, utcnow
from refevo.services.errors import RateLimited, ValidationError, UpstreamFailure
from refevo.services.communication.email import send_reference_request_email, dispatch
from refevo.utils.auth import log_audit
from refevo.utils.roles import Role, is_allowed
from refevo.utils.constants import REQUEST_PENDING, RESEND_LIMIT_MESSAGE, OVERDUE_AFTER_DAYS

logger = logging.getLogger(__name__)

RESEND_WINDOW = timedelta(days=14)
RESEND_LIMIT = 3


def can_resend(role, requests, now, window=RESEND_WINDOW, limit=RESEND_LIMIT):
    """
    Aggregate gate. Roles other than ``user`` are unlimited.

    For ``user`` the window starts at the earliest request window; an expired
    or missing window allows the resend, otherwise the summed 14-day counts
    must be below ``limit``.
    """
    if is_allowed(role, 'unlimited_resend'):
        return True

    starts = [r.resend_window_start for r in requests if r.resend_window_start is not None]
    if not starts:
        return True

    if now - min(starts) >= window:
        return True

    total = sum(r.resend_count_14d or 0 for r in requests)
    return total < limit


def apply_resend(requests, now, window=RESEND_WINDOW):
    """Per-request counter update: extend an active window or start a new one at ``now``."""
    for r in requests:
        start = r.resend_window_start
        if start is not None and now - start < window:
            r.resend_count_14d = (r.resend_count_14d or 0) + 1
        else:
            r.resend_count_14d = 1
            r.resend_window_start = now
        r.resend_count = (r.resend_count or 0) + 1
        r.last_resent_at = now
    return requests


def resend_pending(candidate, principal, now=None):
    """Resend every pending request for ``candidate`` if the principal's role permits it."""
    now = now or utcnow()
    window = timedelta(days=current_app.config.get('RESEND_WINDOW_DAYS', 14))
    limit = current_app.config.get('RESEND_LIMIT', RESEND_LIMIT)
    role = principal.role if principal else Role.USER

    all_requests = candidate.reference_requests.all()
    requests = [r for r in all_requests
                if r.status == REQUEST_PENDING and not r.referee.is_archived]
    if not requests:
        raise ValidationError("There are no pending requests to resend.")

    # The gate counts every request; only pending ones are resent and counted up.
    if not can_resend(role, all_requests, now, window=window, limit=limit):
        raise RateLimited(RESEND_LIMIT_MESSAGE)

    try:
        apply_resend(requests, now, window=window)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Resend update failed for candidate %s", candidate.id)
        raise UpstreamFailure() from e

    sent = 0
    for r in requests:
        if dispatch(send_reference_request_email, r.referee, candidate).get('success'):
            sent += 1

    log_audit(principal.user_id if principal else None, 'resend_requests', 'candidate', candidate.id,
              details={'requests_count': len(requests), 'emails_sent': sent},
              company_id=candidate.company_id)
    return requests


def request_is_overdue(req, now, days=OVERDUE_AFTER_DAYS):
    """Pending requests older than ``days`` are flagged on the dashboard."""
    return (req.status == REQUEST_PENDING and req.created_at is not None
            and now - req.created_at > timedelta(days=days))
