"""
Role-gated dashboard pages.
"""
from flask import Blueprint, render_template, redirect, url_for, current_app
from flask_login import current_user
from refevo.models import db, Company, Plan, utcnow
from refevo.services.candidate import list_candidates
from refevo.services.resend_policy import can_resend, request_is_overdue
from refevo.utils.auth import role_required, current_principal
from refevo.utils.constants import REQUEST_PENDING
from refevo.utils.roles import is_allowed

bp = Blueprint('dashboard', __name__)


@bp.route('/')
def index():
    if current_user.is_authenticated:
        return redirect(url_for('dashboard.dashboard'))
    return redirect(url_for('auth.login'))


@bp.route('/dashboard')
@role_required('dashboard')
def dashboard():
    principal = current_principal()
    now = utcnow()
    rows = []
    for candidate in list_candidates(principal,
                                     include_archived=is_allowed(principal.role, 'manage_candidates')):
        requests = candidate.reference_requests.all()
        pending = [r for r in requests if r.status == REQUEST_PENDING]
        rows.append({
            'candidate': candidate,
            'progress': candidate.get_reference_progress(),
            'overdue': any(request_is_overdue(r, now) for r in requests),
            'can_resend': bool(pending) and can_resend(principal.role, requests, now),
        })
    return render_template('dashboard/index.html', rows=rows, principal=principal,
                           can_manage=is_allowed(principal.role, 'manage_candidates'),
                           cooldown=current_app.config['RESEND_COOLDOWN_SECONDS'])


@bp.route('/dashboard/manager')
@role_required('manager_dashboard')
def manager():
    principal = current_principal()
    candidates = list_candidates(principal, include_archived=True)
    return render_template('dashboard/manager.html', candidates=candidates, principal=principal)


@bp.route('/dashboard/company-admin')
@role_required('company_admin')
def company_admin():
    principal = current_principal()
    company = db.session.get(Company, principal.company_id) if principal.company_id else None
    return render_template('dashboard/company_admin.html', company=company, principal=principal)


@bp.route('/dashboard/billing')
@role_required('billing')
def billing():
    principal = current_principal()
    company = db.session.get(Company, principal.company_id) if principal.company_id else None
    return render_template('dashboard/billing.html', company=company,
                           plan=company.plan if company else None)


@bp.route('/dashboard/audit-logs')
@role_required('audit_logs')
def audit_logs():
    """Page shell; rows are loaded from /api/audit-logs."""
    return render_template('dashboard/audit_logs.html', principal=current_principal())


@bp.route('/admin')
@role_required('global_admin')
def admin():
    return render_template('dashboard/admin.html', tenants=Company.query.order_by(Company.name).all(),
                           plans=Plan.query.order_by(Plan.plan_type, Plan.display_name).all())
