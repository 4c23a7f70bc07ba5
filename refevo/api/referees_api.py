"""
Referee administration API routes.
"""
from flask import Blueprint, request, jsonify
from refevo.services.candidate import get_referee_for, update_referee, set_referee_archived
from refevo.utils.auth import api_role_required, current_principal

bp = Blueprint('referees_api', __name__, url_prefix='/api/referees')


@bp.route('/<referee_id>', methods=['PATCH'])
@api_role_required('manage_candidates')
def update(referee_id):
    """Edit referee contact details; the change set is returned and audited."""
    principal = current_principal()
    referee, changes = update_referee(principal, get_referee_for(principal, referee_id),
                                      request.get_json(silent=True) or {})
    return jsonify({'success': True, 'referee': referee.to_dict(), 'changes': changes})


@bp.route('/<referee_id>/archive', methods=['POST'])
@api_role_required('manage_candidates')
def archive(referee_id):
    principal = current_principal()
    referee = set_referee_archived(principal, get_referee_for(principal, referee_id), True)
    return jsonify({'success': True, 'referee': referee.to_dict()})


@bp.route('/<referee_id>/unarchive', methods=['POST'])
@api_role_required('manage_candidates')
def unarchive(referee_id):
    principal = current_principal()
    referee = set_referee_archived(principal, get_referee_for(principal, referee_id), False)
    return jsonify({'success': True, 'referee': referee.to_dict()})
