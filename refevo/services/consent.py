"""
Candidate consent workflow: resolve a consent token and record the decision.
"""
import logging
from collections import namedtuple
from sqlalchemy.exc import SQLAlchemyError
from refevo.models import db, Candidate, utcnow
from refevo.services.errors import NotFound, UpstreamFailure
from refevo.services.communication.email import send_referee_invite_email, dispatch
from refevo.utils.auth import log_audit
from refevo.utils.constants import (
    CONSENT_GRANTED, CONSENT_DECLINED, CANDIDATE_ACTIVE, CANDIDATE_ARCHIVED,
    ALREADY_GRANTED_MESSAGE,
)

logger = logging.getLogger(__name__)

ConsentResult = namedtuple('ConsentResult', ['changed', 'message', 'candidate'])


def get_candidate_by_consent_token(token):
    if not token:
        raise NotFound()
    try:
        candidate = Candidate.query.filter_by(consent_token=token).first()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Consent token lookup failed")
        raise UpstreamFailure() from e
    if candidate is None:
        raise NotFound()
    return candidate


def grant_consent(token, notify=None):
    """
    Mark consent granted and the candidate active in one update.

    The referee invite goes out after the commit; a failed send is logged and
    does not undo the consent.
    """
    candidate = get_candidate_by_consent_token(token)
    now = utcnow()
    try:
        Candidate.query.filter_by(id=candidate.id).update({
            Candidate.consent_status: CONSENT_GRANTED,
            Candidate.status: CANDIDATE_ACTIVE,
            Candidate.consent_at: now,
            Candidate.updated_at: now,
        }, synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to record consent for candidate %s", candidate.id)
        raise UpstreamFailure() from e

    db.session.refresh(candidate)

    dispatch(notify or send_referee_invite_email, candidate)

    log_audit(None, 'grant_consent', 'candidate', candidate.id,
              company_id=candidate.company_id, actor='candidate')
    return ConsentResult(True, "Thank you, your consent has been recorded.", candidate)


def decline_consent(token):
    """
    Record a decline unless consent was already granted.

    The guard lives in the UPDATE's WHERE clause so a concurrent grant is never
    overwritten by a stale decline link.
    """
    candidate = get_candidate_by_consent_token(token)
    now = utcnow()
    try:
        updated = Candidate.query.filter(
            Candidate.id == candidate.id,
            Candidate.consent_status != CONSENT_GRANTED,
        ).update({
            Candidate.consent_status: CONSENT_DECLINED,
            Candidate.status: CANDIDATE_ARCHIVED,
            Candidate.consent_at: now,
            Candidate.updated_at: now,
        }, synchronize_session=False)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to record decline for candidate %s", candidate.id)
        raise UpstreamFailure() from e

    db.session.refresh(candidate)

    if not updated:
        return ConsentResult(False, ALREADY_GRANTED_MESSAGE, candidate)

    log_audit(None, 'decline_consent', 'candidate', candidate.id,
              company_id=candidate.company_id, actor='candidate')
    return ConsentResult(True, "Your decision has been recorded. We will not contact your referees.",
                         candidate)
