"""
Company (tenant) and Plan models.
"""
from refevo.models.base import db, generate_uuid, utcnow, isoformat


class Company(db.Model):
    """Tenant with feature flags and its assigned plan."""
    __tablename__ = 'companies'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='active')  # active, inactive
    billing_email = db.Column(db.String(255))
    plan_id = db.Column(db.String(36), db.ForeignKey('plans.id', ondelete='SET NULL',
                                                     use_alter=True, name='fk_companies_plan_id'))

    # Feature flags
    enable_credits = db.Column(db.Boolean, nullable=False, default=True)
    enable_custom_templates = db.Column(db.Boolean, nullable=False, default=False)
    custom_template_limit = db.Column(db.Integer, nullable=False, default=0)
    enable_user_management = db.Column(db.Boolean, nullable=False, default=False)
    custom_templates_billing_type = db.Column(db.String(20))  # included, per_template

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    plan = db.relationship('Plan', foreign_keys=[plan_id], post_update=True)

    def features(self):
        return {
            'enable_credits': self.enable_credits,
            'enable_custom_templates': self.enable_custom_templates,
            'custom_template_limit': self.custom_template_limit,
            'enable_user_management': self.enable_user_management,
            'custom_templates_billing_type': self.custom_templates_billing_type,
        }

    def to_dict(self):
        result = {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'billing_email': self.billing_email,
            'plan_id': self.plan_id,
            'created_at': isoformat(self.created_at),
        }
        result.update(self.features())
        return result


class Plan(db.Model):
    """Pricing plan. Custom plans belong to one company and carry contract terms."""
    __tablename__ = 'plans'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    display_name = db.Column(db.String(255), nullable=False)
    plan_type = db.Column(db.String(20), nullable=False, default='global')  # global, custom
    company_id = db.Column(db.String(36), db.ForeignKey('companies.id', ondelete='CASCADE'),
                           index=True)

    # Billing
    price_monthly = db.Column(db.Numeric(10, 2))
    price_annual = db.Column(db.Numeric(10, 2))
    credits_per_month = db.Column(db.Integer)
    data_retention_days = db.Column(db.Integer)
    support_level = db.Column(db.String(50), default='standard')
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Contract terms (custom plans only)
    contract_start_date = db.Column(db.Date)
    contract_term_months = db.Column(db.Integer)
    contract_end_date = db.Column(db.Date)
    is_auto_renew = db.Column(db.Boolean)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    company = db.relationship('Company', foreign_keys=[company_id])

    def to_dict(self):
        return {
            'id': self.id,
            'display_name': self.display_name,
            'plan_type': self.plan_type,
            'company_id': self.company_id,
            'price_monthly': float(self.price_monthly) if self.price_monthly is not None else None,
            'price_annual': float(self.price_annual) if self.price_annual is not None else None,
            'credits_per_month': self.credits_per_month,
            'data_retention_days': self.data_retention_days,
            'support_level': self.support_level,
            'is_active': self.is_active,
            'contract_start_date': isoformat(self.contract_start_date),
            'contract_term_months': self.contract_term_months,
            'contract_end_date': isoformat(self.contract_end_date),
            'is_auto_renew': self.is_auto_renew,
        }
