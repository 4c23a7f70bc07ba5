"""
Tenant and plan administration (global admins only).
"""
import calendar
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from sqlalchemy.exc import SQLAlchemyError
from refevo.models import db, Company, Plan
from refevo.services.errors import NotFound, ValidationError, UpstreamFailure
from refevo.services.communication.email import send_plan_approval_email, dispatch
from refevo.utils.auth import log_audit, validate_email

logger = logging.getLogger(__name__)

TENANT_STATUSES = ('active', 'inactive')
PLAN_TYPES = ('global', 'custom')
FEATURE_FLAGS = ('enable_credits', 'enable_custom_templates', 'enable_user_management')
BILLING_TYPES = ('included', 'per_template')
CONTRACT_FIELDS = ('contract_start_date', 'contract_term_months', 'contract_end_date', 'is_auto_renew')


def add_months(start, months):
    """``start`` plus ``months`` calendar months, clamping the day to the target month's end."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _commit(context):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Database commit failed: %s", context)
        raise UpstreamFailure() from e


def _as_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def get_company(company_id):
    company = db.session.get(Company, company_id)
    if company is None:
        raise NotFound("Tenant not found")
    return company


def list_tenants():
    return Company.query.order_by(Company.name).all()


def _apply_tenant_fields(company, data, errors):
    if 'name' in data:
        name = (data.get('name') or '').strip()
        if not name:
            errors['name'] = 'Company name is required.'
        company.name = name
    if 'billing_email' in data:
        billing_email = (data.get('billing_email') or '').strip().lower() or None
        if billing_email and not validate_email(billing_email):
            errors['billing_email'] = 'Enter a valid email address.'
        company.billing_email = billing_email
    if 'status' in data:
        if data['status'] not in TENANT_STATUSES:
            errors['status'] = 'Status must be active or inactive.'
        company.status = data['status']
    if 'plan_id' in data:
        plan_id = data.get('plan_id') or None
        if plan_id and db.session.get(Plan, plan_id) is None:
            errors['plan_id'] = 'Unknown plan.'
        company.plan_id = plan_id


def create_tenant(principal, data):
    data = dict(data or {})
    data.setdefault('name', '')
    company = Company(status='active')
    errors = {}
    _apply_tenant_fields(company, data, errors)
    if errors:
        raise ValidationError(errors=errors)

    db.session.add(company)
    _commit("create tenant")
    log_audit(principal.user_id, 'create_tenant', 'company', company.id,
              details={'name': company.name}, company_id=company.id)
    return company


def update_tenant(principal, company, data):
    data = dict(data or {})
    before = company.to_dict()
    errors = {}
    _apply_tenant_fields(company, data, errors)
    if errors:
        db.session.rollback()
        raise ValidationError(errors=errors)

    _commit("update tenant")
    after = company.to_dict()
    changes = {k: {'from': before[k], 'to': after[k]} for k in after if before.get(k) != after[k]}
    log_audit(principal.user_id, 'update_tenant', 'company', company.id,
              details={'changes': changes}, company_id=company.id)
    return company


def update_features(principal, company, data):
    """
    Update feature flags. Switching custom templates off always resets the
    template limit to 0.
    """
    data = dict(data or {})
    before = company.features()

    for flag in FEATURE_FLAGS:
        if flag in data:
            setattr(company, flag, _as_bool(data[flag]))

    if 'custom_template_limit' in data:
        try:
            limit = int(data['custom_template_limit'])
        except (TypeError, ValueError):
            raise ValidationError(errors={'custom_template_limit': 'Enter a whole number.'})
        if limit < 0:
            raise ValidationError(errors={'custom_template_limit': 'Limit cannot be negative.'})
        company.custom_template_limit = limit

    if 'custom_templates_billing_type' in data:
        billing_type = data['custom_templates_billing_type'] or None
        if billing_type and billing_type not in BILLING_TYPES:
            raise ValidationError(errors={'custom_templates_billing_type': 'Unknown billing type.'})
        company.custom_templates_billing_type = billing_type

    if not company.enable_custom_templates:
        company.custom_template_limit = 0

    _commit("update features")
    after = company.features()
    changes = {k: {'from': before[k], 'to': after[k]} for k in after if before[k] != after[k]}
    log_audit(principal.user_id, 'update_features', 'company', company.id,
              details={'changes': changes}, company_id=company.id)
    return company


def get_plan(plan_id):
    plan = db.session.get(Plan, plan_id)
    if plan is None:
        raise NotFound("Plan not found")
    return plan


def list_plans(plan_type=None):
    query = Plan.query
    if plan_type:
        query = query.filter_by(plan_type=plan_type)
    return query.order_by(Plan.plan_type, Plan.display_name).all()


def _parse_decimal(value, field, errors):
    if value in (None, ''):
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        errors[field] = 'Enter a valid amount.'
        return None
    if amount < 0:
        errors[field] = 'Amount cannot be negative.'
    return amount


def _parse_int(value, field, errors):
    if value in (None, ''):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        errors[field] = 'Enter a whole number.'
        return None
    if number < 0:
        errors[field] = 'Value cannot be negative.'
    return number


def _parse_date(value, field, errors):
    if value in (None, ''):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        errors[field] = 'Enter a date as YYYY-MM-DD.'
        return None


def _apply_plan_fields(plan, data, errors):
    if 'display_name' in data:
        plan.display_name = (data.get('display_name') or '').strip()
        if not plan.display_name:
            errors['display_name'] = 'Plan name is required.'
    for field in ('price_monthly', 'price_annual'):
        if field in data:
            setattr(plan, field, _parse_decimal(data[field], field, errors))
    for field in ('credits_per_month', 'data_retention_days'):
        if field in data:
            setattr(plan, field, _parse_int(data[field], field, errors))
    if 'support_level' in data:
        plan.support_level = data.get('support_level') or 'standard'

    if plan.plan_type == 'custom':
        if 'company_id' in data:
            plan.company_id = data.get('company_id') or None
        if not plan.company_id:
            errors['company_id'] = 'Custom plans must belong to a company.'
        elif db.session.get(Company, plan.company_id) is None:
            errors['company_id'] = 'Unknown company.'
        if 'contract_start_date' in data:
            plan.contract_start_date = _parse_date(data['contract_start_date'],
                                                   'contract_start_date', errors)
        if 'contract_term_months' in data:
            plan.contract_term_months = _parse_int(data['contract_term_months'],
                                                   'contract_term_months', errors)
        if 'is_auto_renew' in data:
            plan.is_auto_renew = _as_bool(data['is_auto_renew'])
        if plan.contract_start_date and plan.contract_term_months:
            plan.contract_end_date = add_months(plan.contract_start_date, plan.contract_term_months)
        else:
            plan.contract_end_date = None
    else:
        plan.company_id = None
        for field in CONTRACT_FIELDS:
            setattr(plan, field, None)


def save_plan(principal, data, plan=None):
    """
    Create or update a plan.

    New custom plans start inactive until approved and become the owning
    company's assigned plan. Global plans never carry a company or contract.
    """
    data = dict(data or {})
    creating = plan is None
    if creating:
        plan_type = data.get('plan_type') or 'global'
        if plan_type not in PLAN_TYPES:
            raise ValidationError(errors={'plan_type': 'Plan type must be global or custom.'})
        plan = Plan(plan_type=plan_type, display_name='')
        data.setdefault('display_name', '')
        if plan_type == 'custom':
            plan.is_active = False
            data.setdefault('company_id', None)
        else:
            plan.is_active = _as_bool(data.get('is_active', True))
    elif 'is_active' in data and plan.plan_type == 'global':
        plan.is_active = _as_bool(data['is_active'])

    errors = {}
    _apply_plan_fields(plan, data, errors)
    if errors:
        if not creating:
            db.session.rollback()
        raise ValidationError(errors=errors)

    if creating:
        db.session.add(plan)
        db.session.flush()
        if plan.plan_type == 'custom':
            db.session.get(Company, plan.company_id).plan_id = plan.id
    _commit("save plan")

    log_audit(principal.user_id, 'create_plan' if creating else 'update_plan', 'plan', plan.id,
              details={'display_name': plan.display_name, 'plan_type': plan.plan_type},
              company_id=plan.company_id)
    return plan


def approve_plan(principal, plan):
    """Activate a custom plan, assign it to its company and notify billing."""
    if plan.plan_type != 'custom':
        raise ValidationError("Only custom plans need approval.")

    plan.is_active = True
    company = plan.company
    company.plan_id = plan.id
    _commit("approve plan")

    email_result = dispatch(send_plan_approval_email, company, plan)
    log_audit(principal.user_id, 'approve_plan', 'plan', plan.id,
              details={'email_sent': bool(email_result.get('success'))},
              company_id=company.id)
    return plan, email_result
