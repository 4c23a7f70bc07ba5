"""
Public token-keyed pages: candidate consent, referee onboarding and the
referee's reference form.
"""
import logging
from flask import Blueprint, render_template, request, redirect, url_for, session
from refevo.services.consent import get_candidate_by_consent_token, grant_consent, decline_consent
from refevo.services.onboarding import (
    load_onboarding, validate_nominations, review_nominations, confirm_referees
)
from refevo.services.collection import load_reference_form, submit_reference
from refevo.services.errors import (
    WorkflowError, NotFound, InactiveResource, ConsentRequired, ArchivedResource,
    AlreadySubmitted, ValidationError
)
from refevo.utils.constants import CONFIRM_REFEREES_TEXT

logger = logging.getLogger(__name__)

bp = Blueprint('public', __name__)

NOMINATION_FIELDS = ('name', 'email', 'mobile', 'relationship', 'type')


def _message(title, message, status=200):
    return render_template('public/message.html', title=title, message=message), status


def _workflow_page(error):
    """Terminal page for a workflow error that prevents showing the form."""
    if isinstance(error, NotFound):
        return _message('Invalid link', error.message, 404)
    if isinstance(error, ArchivedResource):
        return _message('Reference archived', error.message, 410)
    if isinstance(error, InactiveResource):
        return _message('Unavailable', error.message, 409)
    if isinstance(error, ConsentRequired):
        return _message('Consent needed', error.message, 409)
    logger.warning("Workflow error on %s: %s", request.path, error.message)
    return _message('Something went wrong', error.message, error.status_code)


def _session_key(token):
    return f'nominations:{token}'


def _form_nominations():
    """Rows from the repeated form inputs name[], email[], ..."""
    columns = {f: request.form.getlist(f'{f}[]') for f in NOMINATION_FIELDS}
    count = max((len(v) for v in columns.values()), default=0)
    rows = []
    for i in range(count):
        row = {f: (columns[f][i] if i < len(columns[f]) else '') for f in NOMINATION_FIELDS}
        if any(row[f].strip() for f in ('name', 'email', 'mobile', 'relationship')):
            rows.append(row)
    return rows


@bp.route('/consent/<token>', methods=['GET', 'POST'])
def consent(token):
    try:
        candidate = get_candidate_by_consent_token(token)
        if request.method == 'GET':
            return render_template('public/consent.html', candidate=candidate, token=token)

        decision = request.form.get('decision')
        if decision == 'granted':
            grant_consent(token)
            return redirect(url_for('public.add_referees', token=token))
        if decision == 'declined':
            result = decline_consent(token)
            return _message('Consent', result.message)
        return render_template('public/consent.html', candidate=candidate, token=token,
                               error='Please choose whether to give consent.'), 400
    except WorkflowError as e:
        return _workflow_page(e)


@bp.route('/decline-consent/<token>')
def decline(token):
    try:
        result = decline_consent(token)
    except WorkflowError as e:
        return _workflow_page(e)
    return _message('Consent', result.message)


@bp.route('/add-referees/<token>', methods=['GET', 'POST'])
def add_referees(token):
    try:
        ctx = load_onboarding(token)
    except WorkflowError as e:
        return _workflow_page(e)

    ref_types = ctx.template.get_ref_types()
    if request.method == 'GET':
        nominations = session.get(_session_key(token), ctx.prefill)
        return render_template('public/add_referees.html', candidate=ctx.candidate, token=token,
                               ref_types=ref_types, nominations=nominations, errors={})

    nominations = _form_nominations()
    try:
        validate_nominations(nominations, ctx.template)
    except ValidationError as e:
        return render_template('public/add_referees.html', candidate=ctx.candidate, token=token,
                               ref_types=ref_types, nominations=nominations, errors=e.errors,
                               error=e.message), 400

    session[_session_key(token)] = nominations
    return redirect(url_for('public.review_referees', token=token))


@bp.route('/add-referees/<token>/review', methods=['GET', 'POST'])
def review_referees(token):
    nominations = session.get(_session_key(token))
    if not nominations:
        return redirect(url_for('public.add_referees', token=token))

    try:
        ctx = load_onboarding(token)
        drafts = review_nominations(validate_nominations(nominations, ctx.template))
    except ValidationError:
        return redirect(url_for('public.add_referees', token=token))
    except WorkflowError as e:
        return _workflow_page(e)

    if request.method == 'POST':
        try:
            confirm_referees(token, nominations, confirmed=request.form.get('confirm') == 'yes')
        except ValidationError as e:
            return render_template('public/review_referees.html', candidate=ctx.candidate,
                                   token=token, drafts=drafts, template=ctx.template,
                                   confirm_text=CONFIRM_REFEREES_TEXT, error=e.message), 400
        except WorkflowError as e:
            return render_template('public/review_referees.html', candidate=ctx.candidate,
                                   token=token, drafts=drafts, template=ctx.template,
                                   confirm_text=CONFIRM_REFEREES_TEXT,
                                   error=e.message), e.status_code
        session.pop(_session_key(token), None)
        return redirect(url_for('public.thank_you', kind='referees'))

    return render_template('public/review_referees.html', candidate=ctx.candidate, token=token,
                           drafts=drafts, template=ctx.template, confirm_text=CONFIRM_REFEREES_TEXT)


@bp.route('/referee/<token>', methods=['GET', 'POST'])
@bp.route('/ref/<token>', methods=['GET', 'POST'])
def reference_form(token):
    try:
        form = load_reference_form(token)
    except AlreadySubmitted:
        return redirect(url_for('public.thank_you', kind='reference'))
    except WorkflowError as e:
        return _workflow_page(e)

    if request.method == 'GET':
        return render_template('public/reference_form.html', form=form, token=token,
                               answers={}, errors={})

    answers = {q['key']: request.form.get(q['key'], '') for q in form.questions}
    try:
        submit_reference(token, answers)
    except AlreadySubmitted:
        return redirect(url_for('public.thank_you', kind='reference'))
    except ValidationError as e:
        return render_template('public/reference_form.html', form=form, token=token,
                               answers=answers, errors=e.errors, error=e.message), 400
    except WorkflowError as e:
        return render_template('public/reference_form.html', form=form, token=token,
                               answers=answers, errors={}, error=e.message), e.status_code
    return redirect(url_for('public.thank_you', kind='reference'))


@bp.route('/thank-you')
def thank_you():
    kind = request.args.get('kind')
    if kind == 'reference':
        message = 'Thank you, your reference has been submitted.'
    elif kind == 'referees':
        message = 'Thank you, your referees have been added and will be contacted shortly.'
    else:
        message = 'Thank you.'
    return _message('Thank you', message)


@bp.route('/optout/confirmed')
def optout_confirmed():
    return _message('Unsubscribed', 'You have been unsubscribed and will not receive further emails.')
