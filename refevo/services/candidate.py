"""
Candidate and referee management services for recruiters.
"""
import logging
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from refevo.models import db, Candidate, Referee, ReferenceRequest, ReferenceTemplate, utcnow
from refevo.services.errors import NotFound, ValidationError, UpstreamFailure, InactiveResource
from refevo.services.communication.email import (
    send_consent_request_email, send_reference_request_email, dispatch
)
from refevo.utils.auth import log_audit, validate_email, can_access_company
from refevo.utils.roles import is_allowed
from refevo.utils.normalise import (
    title_case_name, normalise_email, is_uk_mobile, uk_mobile_to_e164, trim_all, E164_PATTERN
)
from refevo.utils.constants import (
    REFEREE_INVITED, REQUEST_PENDING, REQUEST_ARCHIVED, TEMPLATE_UNAVAILABLE_MESSAGE
)

logger = logging.getLogger(__name__)

REFEREE_EDITABLE_FIELDS = ('name', 'email', 'mobile', 'relationship')


def _commit(context):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Database commit failed: %s", context)
        raise UpstreamFailure() from e


def visible_templates(company_id):
    """Active templates a tenant may use: its own plus the global ones."""
    return ReferenceTemplate.query.filter(
        ReferenceTemplate.is_active.is_(True),
        or_(ReferenceTemplate.company_id.is_(None), ReferenceTemplate.company_id == company_id)
    ).order_by(ReferenceTemplate.company_id.is_(None), ReferenceTemplate.name).all()


def validate_candidate_input(data):
    data = trim_all(dict(data or {}))
    errors = {}

    full_name = data.get('full_name') or ''
    email = data.get('email') or ''
    mobile = data.get('mobile') or ''

    if not full_name:
        errors['full_name'] = 'Full name is required.'
    if not validate_email(email):
        errors['email'] = 'Enter a valid email address.'
    if mobile and not is_uk_mobile(mobile):
        errors['mobile'] = 'Enter a valid UK mobile number starting 07 (11 digits).'

    if errors:
        raise ValidationError(errors=errors)

    return {
        'full_name': title_case_name(full_name),
        'email': normalise_email(email),
        'mobile': uk_mobile_to_e164(mobile) if mobile else None,
        'template_id': data.get('template_id') or None,
    }


def _resolve_template_id(company_id, template_id):
    templates = visible_templates(company_id)
    if template_id:
        if template_id not in {t.id for t in templates}:
            raise InactiveResource(TEMPLATE_UNAVAILABLE_MESSAGE)
        return template_id
    return templates[0].id if templates else None


def create_candidate(principal, data):
    """
    Create a candidate awaiting consent and email them the consent link.

    Returns ``(candidate, email_result)``. A failed email does not fail the
    creation; the caller reports it as queued.
    """
    cleaned = validate_candidate_input(data)
    template_id = _resolve_template_id(principal.company_id, cleaned['template_id'])

    candidate = Candidate(
        company_id=principal.company_id,
        created_by=principal.user_id,
        full_name=cleaned['full_name'],
        email=cleaned['email'],
        mobile=cleaned['mobile'],
        template_id=template_id,
    )
    db.session.add(candidate)
    _commit("create candidate")

    email_result = dispatch(send_consent_request_email, candidate)
    if email_result.get('success'):
        candidate.last_invite_sent_at = utcnow()
        candidate.email_status = 'sent'
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Could not record invite timestamp for candidate %s", candidate.id)

    log_audit(principal.user_id, 'create_candidate', 'candidate', candidate.id,
              details={'email': candidate.email}, company_id=candidate.company_id)
    return candidate, email_result


def list_candidates(principal, include_archived=False):
    query = Candidate.query
    if not is_allowed(principal.role, 'global_admin'):
        query = query.filter_by(company_id=principal.company_id)
    if not include_archived:
        query = query.filter_by(is_archived=False)
    return query.order_by(Candidate.created_at.desc()).all()


def get_candidate_for(principal, candidate_id):
    """Candidate by id, hidden as NotFound when it belongs to another tenant."""
    candidate = db.session.get(Candidate, candidate_id)
    if candidate is None or not can_access_company(principal, candidate.company_id):
        raise NotFound("Candidate not found")
    return candidate


def set_candidate_archived(principal, candidate, archived):
    candidate.is_archived = archived
    candidate.archived_at = utcnow() if archived else None
    _commit("archive candidate")
    log_audit(principal.user_id, 'archive_candidate' if archived else 'unarchive_candidate',
              'candidate', candidate.id, company_id=candidate.company_id)
    return candidate


def get_referee_for(principal, referee_id):
    referee = db.session.get(Referee, referee_id)
    if referee is None or not can_access_company(principal, referee.candidate.company_id):
        raise NotFound("Referee not found")
    return referee


def _clean_referee_fields(data, partial=False):
    data = trim_all(dict(data or {}))
    errors = {}
    cleaned = {}

    if 'name' in data or not partial:
        if not data.get('name'):
            errors['name'] = 'Name is required.'
        else:
            cleaned['name'] = title_case_name(data['name'])
    if 'email' in data or not partial:
        if not validate_email(data.get('email')):
            errors['email'] = 'Enter a valid email address.'
        else:
            cleaned['email'] = normalise_email(data['email'])
    if data.get('mobile'):
        if is_uk_mobile(data['mobile']):
            cleaned['mobile'] = uk_mobile_to_e164(data['mobile'])
        elif E164_PATTERN.match(data['mobile']):
            cleaned['mobile'] = data['mobile']
        else:
            errors['mobile'] = 'Enter a valid mobile number.'
    elif 'mobile' in data:
        cleaned['mobile'] = None
    if 'relationship' in data:
        cleaned['relationship'] = data['relationship'] or None

    if errors:
        raise ValidationError(errors=errors)
    return cleaned


def add_referee(principal, candidate, data):
    """Recruiter adds a referee by hand; the referee and its request commit together."""
    cleaned = _clean_referee_fields(data)
    ref_type = (data or {}).get('type') or None
    if candidate.template is not None:
        allowed = candidate.template.type_values()
        if len(allowed) == 1 and not ref_type:
            ref_type = allowed[0]
        if allowed and ref_type not in allowed:
            raise ValidationError(errors={'type': 'Choose a valid referee type.'})

    referee = Referee(
        candidate_id=candidate.id,
        template_id=candidate.template_id,
        type=ref_type,
        status=REFEREE_INVITED,
        **cleaned
    )
    try:
        db.session.add(referee)
        db.session.flush()
        db.session.add(ReferenceRequest(
            candidate_id=candidate.id,
            referee_id=referee.id,
            template_type=ref_type,
            status=REQUEST_PENDING,
        ))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Adding referee failed for candidate %s", candidate.id)
        raise UpstreamFailure() from e

    if dispatch(send_reference_request_email, referee, candidate).get('success'):
        referee.email_sent = True
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Could not flag sent email for referee %s", referee.id)

    log_audit(principal.user_id, 'add_referee', 'referee', referee.id,
              details={'candidate_id': candidate.id}, company_id=candidate.company_id)
    return referee


def update_referee(principal, referee, data):
    """Edit contact fields; the audit entry records a before/after diff of changed fields."""
    cleaned = _clean_referee_fields(data, partial=True)
    diff = {}
    for field in REFEREE_EDITABLE_FIELDS:
        if field in cleaned and getattr(referee, field) != cleaned[field]:
            diff[field] = {'from': getattr(referee, field), 'to': cleaned[field]}
            setattr(referee, field, cleaned[field])

    if not diff:
        return referee, diff

    _commit("update referee")
    log_audit(principal.user_id, 'update_referee', 'referee', referee.id,
              details={'changes': diff}, company_id=referee.candidate.company_id)
    return referee, diff


def set_referee_archived(principal, referee, archived):
    """Archive or restore a referee and mirror it onto its open request."""
    referee.is_archived = archived
    referee.archived_at = utcnow() if archived else None
    if archived:
        ReferenceRequest.query.filter_by(referee_id=referee.id, status=REQUEST_PENDING).update(
            {ReferenceRequest.status: REQUEST_ARCHIVED}, synchronize_session=False)
    else:
        ReferenceRequest.query.filter_by(referee_id=referee.id, status=REQUEST_ARCHIVED).update(
            {ReferenceRequest.status: REQUEST_PENDING}, synchronize_session=False)
    _commit("archive referee")

    log_audit(principal.user_id, 'archive_referee' if archived else 'unarchive_referee',
              'referee', referee.id, company_id=referee.candidate.company_id)
    return referee
