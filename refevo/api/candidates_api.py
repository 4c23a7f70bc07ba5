"""
Candidate API routes: creation, listing, archival and resends.
"""
from flask import Blueprint, request, jsonify, current_app
from refevo.models import utcnow
from refevo.services.candidate import (
    create_candidate, list_candidates, get_candidate_for, set_candidate_archived, add_referee,
    visible_templates
)
from refevo.services.resend_policy import can_resend, resend_pending, request_is_overdue
from refevo.utils.auth import api_login_required, api_role_required, current_principal
from refevo.utils.constants import REQUEST_PENDING
from refevo.utils.roles import is_allowed

bp = Blueprint('candidates_api', __name__, url_prefix='/api/candidates')


def _candidate_summary(candidate, principal, now):
    data = candidate.to_dict()
    requests = candidate.reference_requests.all()
    data['overdue'] = any(request_is_overdue(r, now) for r in requests)
    pending = [r for r in requests if r.status == REQUEST_PENDING]
    data['can_resend'] = bool(pending) and can_resend(principal.role, requests, now)
    return data


@bp.route('', methods=['POST'])
@api_login_required
def create():
    """Create a candidate and send the consent request."""
    principal = current_principal()
    candidate, email_result = create_candidate(principal, request.get_json(silent=True) or {})
    if email_result.get('success'):
        message = 'Consent request sent to the candidate.'
    else:
        message = 'Candidate added. The consent email is queued and will be sent shortly.'
    return jsonify({
        'success': True,
        'candidate': candidate.to_dict(),
        'email_sent': bool(email_result.get('success')),
        'message': message,
    }), 201


@bp.route('', methods=['GET'])
@api_login_required
def list_all():
    principal = current_principal()
    include_archived = (request.args.get('include_archived', '').lower() in ('1', 'true')
                        and is_allowed(principal.role, 'manage_candidates'))
    now = utcnow()
    candidates = list_candidates(principal, include_archived=include_archived)
    return jsonify({'candidates': [_candidate_summary(c, principal, now) for c in candidates]})


@bp.route('/templates', methods=['GET'])
@api_login_required
def templates():
    """Active templates the caller's tenant can assign to a candidate."""
    principal = current_principal()
    return jsonify({'templates': [t.to_dict() for t in visible_templates(principal.company_id)]})


@bp.route('/<candidate_id>', methods=['GET'])
@api_login_required
def detail(candidate_id):
    """Full candidate state. Clients re-fetch this when notified of a change."""
    principal = current_principal()
    candidate = get_candidate_for(principal, candidate_id)
    data = _candidate_summary(candidate, principal, utcnow())
    data['referees'] = [r.to_dict() for r in candidate.referees]
    data['requests'] = [r.to_dict() for r in candidate.reference_requests]
    data['resend_cooldown_seconds'] = current_app.config['RESEND_COOLDOWN_SECONDS']
    return jsonify(data)


@bp.route('/<candidate_id>/archive', methods=['POST'])
@api_role_required('manage_candidates')
def archive(candidate_id):
    principal = current_principal()
    candidate = set_candidate_archived(principal, get_candidate_for(principal, candidate_id), True)
    return jsonify({'success': True, 'candidate': candidate.to_dict()})


@bp.route('/<candidate_id>/unarchive', methods=['POST'])
@api_role_required('manage_candidates')
def unarchive(candidate_id):
    principal = current_principal()
    candidate = set_candidate_archived(principal, get_candidate_for(principal, candidate_id), False)
    return jsonify({'success': True, 'candidate': candidate.to_dict()})


@bp.route('/<candidate_id>/resend', methods=['POST'])
@api_login_required
def resend(candidate_id):
    """Resend all pending reference requests; 429 once the user's limit is reached."""
    principal = current_principal()
    candidate = get_candidate_for(principal, candidate_id)
    requests = resend_pending(candidate, principal)
    return jsonify({
        'success': True,
        'resent': len(requests),
        'requests': [r.to_dict() for r in requests],
    })


@bp.route('/<candidate_id>/referees', methods=['POST'])
@api_login_required
def create_referee(candidate_id):
    principal = current_principal()
    candidate = get_candidate_for(principal, candidate_id)
    referee = add_referee(principal, candidate, request.get_json(silent=True) or {})
    return jsonify({'success': True, 'referee': referee.to_dict()}), 201
