"""
Unauthenticated API routes: opt-out links, waitlist, beta invites and
email provider webhooks.
"""
import logging
from flask import Blueprint, request, jsonify, redirect, current_app
from refevo.services.communication.email import send_beta_invite_email
from refevo.services.email_events import handle_email_event, opt_out, add_to_waitlist
from refevo.utils.auth import validate_email

logger = logging.getLogger(__name__)

bp = Blueprint('public_api', __name__, url_prefix='/api')


@bp.route('/optout', methods=['GET'])
def optout():
    opt_out(request.args.get('email'), request.args.get('token'),
            current_app.config.get('OPT_OUT_SECRET'))
    return redirect(f"{current_app.config['SITE_URL'].rstrip('/')}/optout/confirmed")


@bp.route('/waitlist/add', methods=['POST'])
def waitlist_add():
    data = request.get_json(silent=True) or {}
    signup = add_to_waitlist(data.get('name'), data.get('email'))
    return jsonify({'success': True, 'data': signup.to_dict()}), 201


@bp.route('/invite/send', methods=['POST'])
def invite_send():
    """Send a beta invite with an opt-out link."""
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip()
    if not validate_email(email):
        return jsonify({'error': 'A valid email is required'}), 400

    result = send_beta_invite_email(data.get('name'), email, data.get('inviteLink'))
    if not result.get('success'):
        logger.error("Invite email error for %s: %s", email, result.get('error'))
        return jsonify({'error': 'Internal Server Error'}), 500
    return jsonify({'success': True, 'data': {'id': result.get('message_id')}})


@bp.route('/webhooks/email', methods=['POST'])
def email_webhook():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({'ok': False, 'error': 'Invalid JSON payload'}), 400
    handle_email_event(payload)
    return jsonify({'ok': True})
