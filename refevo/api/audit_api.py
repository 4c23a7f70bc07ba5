"""
Audit log API routes.
"""
import math
from datetime import date, datetime, time, timedelta
from flask import Blueprint, request, jsonify
from sqlalchemy import or_
from refevo.models import AuditLog, User
from refevo.utils.auth import current_principal
from refevo.utils.constants import AUDIT_PAGE_SIZE
from refevo.utils.roles import is_allowed

bp = Blueprint('audit_api', __name__, url_prefix='/api/audit-logs')


def _parse_day(value):
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


@bp.route('', methods=['GET'])
def list_logs():
    """
    Paginated audit trail for the caller's company.

    Query params: company_id (required), page, user_name ('all' for no filter),
    start_date and end_date as inclusive YYYY-MM-DD days.
    """
    if not request.args.get('company_id'):
        return jsonify({'error': 'Missing company_id'}), 400

    principal = current_principal()
    if principal is None:
        return jsonify({'error': 'Not authenticated'}), 401
    if not is_allowed(principal.role, 'audit_logs'):
        return jsonify({'error': 'Forbidden'}), 403

    try:
        page = max(int(request.args.get('page', 1)), 1)
    except ValueError:
        page = 1

    query = AuditLog.query.outerjoin(User, AuditLog.user_id == User.id).filter(
        AuditLog.company_id == principal.company_id
    )

    user_name = (request.args.get('user_name') or '').strip()
    if user_name and user_name.lower() != 'all':
        pattern = f"%{user_name}%"
        query = query.filter(or_(
            (User.first_name + ' ' + User.last_name).ilike(pattern),
            AuditLog.actor.ilike(pattern),
        ))

    start = _parse_day(request.args.get('start_date'))
    if start:
        query = query.filter(AuditLog.created_at >= datetime.combine(start, time.min))
    end = _parse_day(request.args.get('end_date'))
    if end:
        query = query.filter(AuditLog.created_at < datetime.combine(end + timedelta(days=1), time.min))

    total = query.count()
    logs = (query.order_by(AuditLog.created_at.desc())
            .offset((page - 1) * AUDIT_PAGE_SIZE).limit(AUDIT_PAGE_SIZE).all())

    return jsonify({
        'data': [log.to_dict() for log in logs],
        'meta': {
            'total': total,
            'page': page,
            'limit': AUDIT_PAGE_SIZE,
            'totalPages': math.ceil(total / AUDIT_PAGE_SIZE) if total else 0,
        }
    })
