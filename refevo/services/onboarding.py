"""
Referee onboarding: a consenting candidate nominates referees, reviews them,
and confirms. Confirmation writes every referee and its reference request in
a single transaction.

The candidate's consent token authenticates every step of this flow.
"""
import logging
from collections import namedtuple
from sqlalchemy.exc import SQLAlchemyError
from refevo.models import db, Referee, ReferenceRequest, ReferenceTemplate
from refevo.services.consent import get_candidate_by_consent_token
from refevo.services.errors import (
    ConsentRequired, InactiveResource, ValidationError, UpstreamFailure
)
from refevo.services.communication.email import send_reference_request_email, dispatch
from refevo.utils.auth import log_audit, validate_email
from refevo.utils.normalise import (
    title_case_name, normalise_email, is_uk_mobile, uk_mobile_to_e164, trim_all, E164_PATTERN
)
from refevo.utils.constants import (
    CONSENT_GRANTED, REFEREE_INVITED, REQUEST_PENDING, TEMPLATE_UNAVAILABLE_MESSAGE
)

logger = logging.getLogger(__name__)

OnboardingContext = namedtuple('OnboardingContext', ['candidate', 'template', 'prefill'])

NomineeDraft = namedtuple('NomineeDraft', ['name', 'email', 'mobile', 'relationship', 'type'])


def get_active_template(template_id):
    """Active template or InactiveResource. Missing and inactive are the same hard stop."""
    template = db.session.get(ReferenceTemplate, template_id) if template_id else None
    if template is None or not template.is_active:
        raise InactiveResource(TEMPLATE_UNAVAILABLE_MESSAGE)
    return template


def load_onboarding(token):
    candidate = get_candidate_by_consent_token(token)
    if candidate.consent_status != CONSENT_GRANTED:
        raise ConsentRequired()
    template = get_active_template(candidate.template_id)
    return OnboardingContext(candidate, template, [])


def validate_nominations(nominations, template):
    """
    Check each nomination and return a list of ``NomineeDraft``.

    Raises ValidationError with ``errors[index][field]`` messages. The type is
    required only when the template offers a choice; a single declared type is
    applied automatically.
    """
    nominations = trim_all(list(nominations or []))
    if not nominations:
        raise ValidationError("Add at least one referee.",
                              errors={'referees': 'At least one referee is required.'})

    allowed_types = template.type_values()
    errors = {}
    drafts = []

    for index, raw in enumerate(nominations):
        row_errors = {}
        name = raw.get('name') or ''
        email = raw.get('email') or ''
        mobile = raw.get('mobile') or ''
        ref_type = raw.get('type') or ''

        if not name:
            row_errors['name'] = 'Name is required.'
        if not email:
            row_errors['email'] = 'Email is required.'
        elif not validate_email(email):
            row_errors['email'] = 'Enter a valid email address.'

        if mobile:
            if is_uk_mobile(mobile):
                mobile = uk_mobile_to_e164(mobile)
            elif not E164_PATTERN.match(mobile):
                row_errors['mobile'] = 'Enter a valid mobile number.'

        if len(allowed_types) == 1:
            ref_type = ref_type or allowed_types[0]
            if ref_type != allowed_types[0]:
                row_errors['type'] = 'Choose a valid referee type.'
        elif len(allowed_types) > 1:
            if not ref_type:
                row_errors['type'] = 'Choose a referee type.'
            elif ref_type not in allowed_types:
                row_errors['type'] = 'Choose a valid referee type.'

        if row_errors:
            errors[index] = row_errors
        else:
            drafts.append(NomineeDraft(name, email, mobile or None,
                                       raw.get('relationship') or None, ref_type or None))

    if errors:
        raise ValidationError(errors=errors)
    return drafts


def review_nominations(drafts):
    """Normalised copies for the review screen: title-cased names, lower-cased emails."""
    return [
        d._replace(name=title_case_name(d.name), email=normalise_email(d.email))
        for d in drafts
    ]


def confirm_referees(token, nominations, confirmed, notify=None):
    """
    Persist the reviewed referees.

    The candidate and template are re-read here so a template change since the
    form was shown is honoured. Nothing is written unless every row is valid
    and the whole batch commits. Calling this twice creates duplicates.
    """
    if not confirmed:
        raise ValidationError("Please confirm the referee details before submitting.",
                              errors={'confirm': 'Confirmation is required.'})

    candidate, template, _ = load_onboarding(token)
    drafts = review_nominations(validate_nominations(nominations, template))

    referees = []
    try:
        for draft in drafts:
            referee = Referee(
                candidate_id=candidate.id,
                template_id=candidate.template_id,
                name=draft.name,
                email=draft.email,
                mobile=draft.mobile,
                relationship=draft.relationship,
                type=draft.type,
                status=REFEREE_INVITED,
            )
            db.session.add(referee)
            db.session.flush()
            db.session.add(ReferenceRequest(
                candidate_id=candidate.id,
                referee_id=referee.id,
                template_type=draft.type,
                status=REQUEST_PENDING,
            ))
            referees.append(referee)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Referee confirmation failed for candidate %s", candidate.id)
        raise UpstreamFailure() from e

    log_audit(None, 'confirm_referees', 'candidate', candidate.id,
              details={'referees_count': len(referees), 'requests_count': len(referees),
                       'source': 'review_step'},
              company_id=candidate.company_id, actor='candidate')

    _send_requests(referees, candidate, notify or send_reference_request_email)
    return referees


def _send_requests(referees, candidate, send):
    sent_any = False
    for referee in referees:
        if dispatch(send, referee, candidate).get('success'):
            referee.email_sent = True
            sent_any = True
    if not sent_any:
        return
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not flag sent reference emails for candidate %s", candidate.id)
