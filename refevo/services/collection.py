"""
Reference collection: a referee, identified only by their access token,
answers the questions of the candidate's template.
"""
import json
import logging
from collections import namedtuple
from sqlalchemy.exc import SQLAlchemyError
from refevo.models import db, Referee, ReferenceRequest, ReferenceResponse, utcnow
from refevo.services.errors import (
    NotFound, ArchivedResource, AlreadySubmitted, ValidationError, UpstreamFailure
)
from refevo.services.onboarding import get_active_template
from refevo.utils.auth import log_audit
from refevo.utils.constants import (
    ARCHIVED_REFERENCE_MESSAGE, REFEREE_COMPLETED, REQUEST_PENDING, REQUEST_COMPLETED,
    RATING_SCALE_DEFAULT,
)

logger = logging.getLogger(__name__)

ReferenceForm = namedtuple('ReferenceForm', ['referee', 'candidate', 'template', 'questions'])


def _render_questions(template, candidate):
    questions = []
    for q in template.get_questions():
        q = dict(q)
        q['label'] = q.get('label', '').replace('{candidate_name}', candidate.full_name)
        if q.get('kind') == 'rating':
            q['scale'] = int(q.get('scale') or RATING_SCALE_DEFAULT)
        questions.append(q)
    return questions


def get_referee_by_token(token):
    referee = Referee.query.filter_by(token=token).first() if token else None
    if referee is None:
        raise NotFound()
    return referee


def load_reference_form(token):
    """
    Resolve a referee token to the form to render.

    Archived referees and completed references are distinct terminal states
    and never reach the form.
    """
    referee = get_referee_by_token(token)
    if referee.is_archived:
        raise ArchivedResource(ARCHIVED_REFERENCE_MESSAGE)
    if referee.status == REFEREE_COMPLETED:
        raise AlreadySubmitted()
    candidate = referee.candidate
    template = get_active_template(referee.template_id or candidate.template_id)
    return ReferenceForm(referee, candidate, template, _render_questions(template, candidate))


def validate_answers(template, answers):
    """
    Return the answer map to store, keyed by template question key.

    Keys the template does not define are dropped and unanswered optional
    questions are stored as ''. Required questions must be answered and
    ratings must fall within 1..scale.
    """
    answers = answers or {}
    errors = {}
    cleaned = {}

    for q in template.get_questions():
        key = q['key']
        value = answers.get(key)
        if isinstance(value, str):
            value = value.strip()

        if value in (None, ''):
            if q.get('required'):
                errors[key] = 'This question is required.'
            else:
                cleaned[key] = ''
            continue

        if q.get('kind') == 'rating':
            scale = int(q.get('scale') or RATING_SCALE_DEFAULT)
            try:
                value = int(value)
            except (TypeError, ValueError):
                errors[key] = f'Choose a rating from 1 to {scale}.'
                continue
            if not 1 <= value <= scale:
                errors[key] = f'Choose a rating from 1 to {scale}.'
                continue

        cleaned[key] = value

    if errors:
        raise ValidationError(errors=errors)
    return cleaned


def submit_reference(token, answers):
    """
    Store the answers and complete the referee and its request in one transaction.

    The referee row is locked while its status is re-checked, so a replayed or
    concurrent submission raises AlreadySubmitted instead of storing twice.
    """
    form = load_reference_form(token)
    responses = validate_answers(form.template, answers)
    now = utcnow()

    try:
        referee = (Referee.query.filter_by(id=form.referee.id)
                   .with_for_update().populate_existing().one())
        if referee.status == REFEREE_COMPLETED:
            db.session.rollback()
            raise AlreadySubmitted()
        if referee.is_archived:
            db.session.rollback()
            raise ArchivedResource(ARCHIVED_REFERENCE_MESSAGE)

        db.session.add(ReferenceResponse(
            referee_id=referee.id,
            candidate_id=referee.candidate_id,
            template_id=form.template.id,
            responses=json.dumps(responses),
            submitted_at=now,
        ))
        referee.status = REFEREE_COMPLETED
        referee.response_received_at = now

        ReferenceRequest.query.filter_by(
            referee_id=referee.id, status=REQUEST_PENDING
        ).update({
            ReferenceRequest.status: REQUEST_COMPLETED,
            ReferenceRequest.completed_at: now,
        }, synchronize_session=False)

        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Reference submission failed for referee %s", form.referee.id)
        raise UpstreamFailure() from e

    log_audit(None, 'submit_reference', 'referee', referee.id,
              details={'candidate_id': referee.candidate_id, 'answers_count': len(responses)},
              company_id=form.candidate.company_id, actor='referee')
    return referee
