"""
Global admin API routes: tenants, feature flags, plans and users.
"""
from flask import Blueprint, request, jsonify
from refevo.services.candidate import visible_templates
from refevo.services.tenants import (
    list_tenants, create_tenant, update_tenant, update_features, get_company,
    list_plans, save_plan, get_plan, approve_plan
)
from refevo.services.users import list_users, get_user, set_user_status
from refevo.utils.auth import api_role_required, current_principal

bp = Blueprint('admin_api', __name__, url_prefix='/api/admin')


def _payload():
    return request.get_json(silent=True) or {}


@bp.route('/tenants', methods=['GET'])
@api_role_required('global_admin')
def tenants():
    return jsonify({'tenants': [c.to_dict() for c in list_tenants()]})


@bp.route('/tenants', methods=['POST'])
@api_role_required('global_admin')
def add_tenant():
    company = create_tenant(current_principal(), _payload())
    return jsonify({'success': True, 'tenant': company.to_dict()}), 201


@bp.route('/tenants/<company_id>', methods=['PATCH'])
@api_role_required('global_admin')
def edit_tenant(company_id):
    company = update_tenant(current_principal(), get_company(company_id), _payload())
    return jsonify({'success': True, 'tenant': company.to_dict()})


@bp.route('/tenants/<company_id>/status', methods=['POST'])
@api_role_required('global_admin')
def toggle_status(company_id):
    """Switch a tenant between active and inactive."""
    company = get_company(company_id)
    status = _payload().get('status') or ('inactive' if company.status == 'active' else 'active')
    company = update_tenant(current_principal(), company, {'status': status})
    return jsonify({'success': True, 'tenant': company.to_dict()})


@bp.route('/tenants/<company_id>/features', methods=['PATCH'])
@api_role_required('global_admin')
def edit_features(company_id):
    company = update_features(current_principal(), get_company(company_id), _payload())
    return jsonify({'success': True, 'features': company.features()})


@bp.route('/tenants/<company_id>/templates', methods=['GET'])
@api_role_required('global_admin')
def tenant_templates(company_id):
    company = get_company(company_id)
    return jsonify({'templates': [t.to_dict() for t in visible_templates(company.id)]})


@bp.route('/plans', methods=['GET'])
@api_role_required('global_admin')
def plans():
    return jsonify({'plans': [p.to_dict() for p in list_plans(request.args.get('type'))]})


@bp.route('/plans', methods=['POST'])
@api_role_required('global_admin')
def add_plan():
    plan = save_plan(current_principal(), _payload())
    return jsonify({'success': True, 'plan': plan.to_dict()}), 201


@bp.route('/plans/<plan_id>', methods=['PATCH'])
@api_role_required('global_admin')
def edit_plan(plan_id):
    plan = save_plan(current_principal(), _payload(), plan=get_plan(plan_id))
    return jsonify({'success': True, 'plan': plan.to_dict()})


@bp.route('/plans/<plan_id>/approve', methods=['POST'])
@api_role_required('global_admin')
def approve(plan_id):
    """Activate a custom plan and email the company's billing contact."""
    plan, email_result = approve_plan(current_principal(), get_plan(plan_id))
    return jsonify({
        'success': True,
        'plan': plan.to_dict(),
        'email_sent': bool(email_result.get('success')),
    })


@bp.route('/users', methods=['GET'])
@api_role_required('global_admin')
def users():
    found = list_users(company_id=request.args.get('company_id'),
                       status=request.args.get('status'),
                       search=request.args.get('search'))
    return jsonify({'users': [u.to_dict() for u in found]})


@bp.route('/users/<user_id>/status', methods=['POST'])
@api_role_required('global_admin')
def user_status(user_id):
    """Enable or disable an account; with no body the current status is flipped."""
    user = set_user_status(current_principal(), get_user(user_id), _payload().get('status'))
    return jsonify({'success': True, 'user': user.to_dict()})
