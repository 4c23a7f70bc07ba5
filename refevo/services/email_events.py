"""
Email provider webhooks and mailing-list actions: delivery events, opt-out
and waitlist signups.
"""
import hmac
import json
import logging
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from refevo.models import db, Candidate, EmailLog, EarlyAccessEmail, OptOutLog, WaitlistSignup, utcnow
from refevo.services.errors import ValidationError, UpstreamFailure, WorkflowError
from refevo.utils.auth import validate_email
from refevo.utils.normalise import normalise_email
from refevo.utils.constants import EMAIL_EVENT_STATUSES, OPT_OUT_REASON

logger = logging.getLogger(__name__)


class InvalidOptOutToken(WorkflowError):
    status_code = 401
    default_message = "Invalid token"


class AlreadyOnWaitlist(WorkflowError):
    status_code = 409
    default_message = "You’re already on the waitlist."


def _recipient(payload):
    to = (payload.get('data') or {}).get('to')
    if isinstance(to, list):
        to = to[0] if to else None
    return normalise_email(to) if isinstance(to, str) and to.strip() else None


def handle_email_event(payload):
    """
    Record a provider event and update the matching candidate's email status.

    Unknown event types are logged but leave the candidate untouched. Returns
    the stored EmailLog.
    """
    event_type = payload.get('type') or 'unknown'
    email = _recipient(payload)
    email_status = EMAIL_EVENT_STATUSES.get(event_type)

    candidate = None
    if email:
        candidate = Candidate.query.filter_by(email=email).order_by(Candidate.created_at.desc()).first()
        if candidate is None:
            logger.info("No candidate matches email event recipient %s", email)

    if email_status is None:
        logger.info("Unhandled email event type: %s", event_type)

    log = EmailLog(
        candidate_id=candidate.id if candidate else None,
        recipient_email=email or 'unknown',
        subject=f"Webhook Event: {event_type}",
        status=event_type.replace('email.', ''),
        event_metadata=json.dumps(payload, default=str),
    )
    try:
        db.session.add(log)
        if candidate is not None and email_status is not None:
            candidate.email_status = email_status
            candidate.last_invite_sent_at = utcnow()
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to store email event %s", event_type)
        raise UpstreamFailure() from e
    return log


def opt_out(email, token, expected_secret):
    """Mark an early-access address as opted out. The token is a shared secret."""
    if not email or not token:
        raise ValidationError("Missing parameters")
    if not expected_secret or not hmac.compare_digest(str(token), str(expected_secret)):
        raise InvalidOptOutToken()

    email = normalise_email(email)
    try:
        EarlyAccessEmail.query.filter_by(email=email).update({
            EarlyAccessEmail.opted_out: True,
            EarlyAccessEmail.opted_out_at: utcnow(),
        }, synchronize_session=False)
        db.session.add(OptOutLog(email=email, reason=OPT_OUT_REASON))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Opt-out failed for %s", email)
        raise UpstreamFailure() from e


def add_to_waitlist(name, email):
    name = (name or '').strip()
    email = normalise_email(email)
    if not name or not email:
        raise ValidationError("Missing required fields")
    if not validate_email(email):
        raise ValidationError("Enter a valid email address.", errors={'email': 'Enter a valid email address.'})

    signup = WaitlistSignup(name=name, email=email)
    try:
        db.session.add(signup)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise AlreadyOnWaitlist() from e
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Waitlist signup failed for %s", email)
        raise UpstreamFailure() from e
    return signup
