"""initial refevo schema

Revision ID: a1f3c9d2e7b4
Revises:
Create Date: 2025-10-06

"""
from alembic import op
import sqlalchemy as sa


revision = 'a1f3c9d2e7b4'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', sa.String(36), primary_key=True)


def _timestamps():
    return [sa.Column('created_at', sa.DateTime()), sa.Column('updated_at', sa.DateTime())]


def upgrade():
    conn = op.get_bind()
    tables = sa.inspect(conn).get_table_names()

    if 'companies' not in tables:
        op.create_table(
            'companies',
            _id(),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('status', sa.String(20), nullable=False, server_default='active'),
            sa.Column('billing_email', sa.String(255)),
            sa.Column('plan_id', sa.String(36)),
            sa.Column('enable_credits', sa.Boolean(), nullable=False, server_default=sa.text('1')),
            sa.Column('enable_custom_templates', sa.Boolean(), nullable=False, server_default=sa.text('0')),
            sa.Column('custom_template_limit', sa.Integer(), nullable=False, server_default=sa.text('0')),
            sa.Column('enable_user_management', sa.Boolean(), nullable=False, server_default=sa.text('0')),
            sa.Column('custom_templates_billing_type', sa.String(20)),
            *_timestamps()
        )

    if 'plans' not in tables:
        op.create_table(
            'plans',
            _id(),
            sa.Column('display_name', sa.String(255), nullable=False),
            sa.Column('plan_type', sa.String(20), nullable=False, server_default='global'),
            sa.Column('company_id', sa.String(36), sa.ForeignKey('companies.id', ondelete='CASCADE'), index=True),
            sa.Column('price_monthly', sa.Numeric(10, 2)),
            sa.Column('price_annual', sa.Numeric(10, 2)),
            sa.Column('credits_per_month', sa.Integer()),
            sa.Column('data_retention_days', sa.Integer()),
            sa.Column('support_level', sa.String(50)),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
            sa.Column('contract_start_date', sa.Date()),
            sa.Column('contract_term_months', sa.Integer()),
            sa.Column('contract_end_date', sa.Date()),
            sa.Column('is_auto_renew', sa.Boolean()),
            *_timestamps()
        )
        with op.batch_alter_table('companies') as batch:
            batch.create_foreign_key('fk_companies_plan_id', 'plans', ['plan_id'], ['id'], ondelete='SET NULL')

    if 'users' not in tables:
        op.create_table(
            'users',
            _id(),
            sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
            sa.Column('password_hash', sa.String(255), nullable=False),
            sa.Column('first_name', sa.String(100), nullable=False),
            sa.Column('last_name', sa.String(100), nullable=False),
            sa.Column('role', sa.String(32), nullable=False, server_default='user'),
            sa.Column('company_id', sa.String(36), sa.ForeignKey('companies.id', ondelete='SET NULL'), index=True),
            sa.Column('last_login_at', sa.DateTime()),
            *_timestamps()
        )

    if 'reference_templates' not in tables:
        op.create_table(
            'reference_templates',
            _id(),
            sa.Column('company_id', sa.String(36), sa.ForeignKey('companies.id', ondelete='CASCADE'), index=True),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('description', sa.Text()),
            sa.Column('ref_types', sa.Text()),
            sa.Column('questions', sa.Text()),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
            *_timestamps()
        )

    if 'candidates' not in tables:
        op.create_table(
            'candidates',
            _id(),
            sa.Column('company_id', sa.String(36), sa.ForeignKey('companies.id', ondelete='CASCADE'), index=True),
            sa.Column('created_by', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL')),
            sa.Column('full_name', sa.String(255), nullable=False),
            sa.Column('email', sa.String(255), nullable=False, index=True),
            sa.Column('mobile', sa.String(20)),
            sa.Column('consent_token', sa.String(64), nullable=False, unique=True, index=True),
            sa.Column('consent_status', sa.String(20), nullable=False, server_default='pending'),
            sa.Column('consent_at', sa.DateTime()),
            sa.Column('status', sa.String(20), nullable=False, server_default='awaiting_consent'),
            sa.Column('template_id', sa.String(36), sa.ForeignKey('reference_templates.id', ondelete='SET NULL')),
            sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.text('0')),
            sa.Column('archived_at', sa.DateTime()),
            *_timestamps()
        )
        op.create_index('idx_candidate_company_status', 'candidates', ['company_id', 'status'])

    if 'referees' not in tables:
        op.create_table(
            'referees',
            _id(),
            sa.Column('candidate_id', sa.String(36), sa.ForeignKey('candidates.id', ondelete='CASCADE'),
                      nullable=False, index=True),
            sa.Column('template_id', sa.String(36), sa.ForeignKey('reference_templates.id', ondelete='SET NULL')),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('email', sa.String(255), nullable=False),
            sa.Column('mobile', sa.String(20)),
            sa.Column('relationship', sa.String(100)),
            sa.Column('type', sa.String(50)),
            sa.Column('token', sa.String(64), nullable=False, unique=True, index=True),
            sa.Column('status', sa.String(20), nullable=False, server_default='invited'),
            sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.text('0')),
            sa.Column('archived_at', sa.DateTime()),
            sa.Column('email_sent', sa.Boolean(), nullable=False, server_default=sa.text('0')),
            sa.Column('response_received_at', sa.DateTime()),
            *_timestamps()
        )

    if 'reference_requests' not in tables:
        op.create_table(
            'reference_requests',
            _id(),
            sa.Column('candidate_id', sa.String(36), sa.ForeignKey('candidates.id', ondelete='CASCADE'),
                      nullable=False, index=True),
            sa.Column('referee_id', sa.String(36), sa.ForeignKey('referees.id', ondelete='CASCADE'),
                      nullable=False, index=True),
            sa.Column('template_type', sa.String(50)),
            sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
            sa.Column('resend_count', sa.Integer(), nullable=False, server_default=sa.text('0')),
            sa.Column('created_at', sa.DateTime()),
            sa.Column('completed_at', sa.DateTime()),
        )

    if 'reference_responses' not in tables:
        op.create_table(
            'reference_responses',
            _id(),
            sa.Column('referee_id', sa.String(36), sa.ForeignKey('referees.id', ondelete='CASCADE'),
                      nullable=False, index=True),
            sa.Column('candidate_id', sa.String(36), sa.ForeignKey('candidates.id', ondelete='CASCADE'),
                      nullable=False, index=True),
            sa.Column('template_id', sa.String(36), sa.ForeignKey('reference_templates.id', ondelete='SET NULL')),
            sa.Column('responses', sa.Text(), nullable=False),
            sa.Column('submitted_at', sa.DateTime()),
        )

    if 'audit_logs' not in tables:
        op.create_table(
            'audit_logs',
            _id(),
            sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), index=True),
            sa.Column('actor', sa.String(50)),
            sa.Column('company_id', sa.String(36), index=True),
            sa.Column('action', sa.String(100), nullable=False),
            sa.Column('resource_type', sa.String(50)),
            sa.Column('resource_id', sa.String(36)),
            sa.Column('details', sa.Text()),
            sa.Column('ip_address', sa.String(50)),
            sa.Column('user_agent', sa.String(255)),
            sa.Column('created_at', sa.DateTime(), index=True),
        )
        op.create_index('idx_audit_user_action', 'audit_logs', ['user_id', 'action'])
        op.create_index('idx_audit_company_created', 'audit_logs', ['company_id', 'created_at'])

    if 'email_logs' not in tables:
        op.create_table(
            'email_logs',
            _id(),
            sa.Column('candidate_id', sa.String(36), sa.ForeignKey('candidates.id', ondelete='SET NULL'), index=True),
            sa.Column('recipient_email', sa.String(255)),
            sa.Column('subject', sa.String(255)),
            sa.Column('status', sa.String(50)),
            sa.Column('metadata', sa.Text()),
            sa.Column('created_at', sa.DateTime()),
        )

    if 'early_access_emails' not in tables:
        op.create_table(
            'early_access_emails',
            _id(),
            sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
            sa.Column('opted_out', sa.Boolean(), nullable=False, server_default=sa.text('0')),
            sa.Column('opted_out_at', sa.DateTime()),
            sa.Column('created_at', sa.DateTime()),
        )

    if 'opt_out_log' not in tables:
        op.create_table(
            'opt_out_log',
            _id(),
            sa.Column('email', sa.String(255), nullable=False),
            sa.Column('reason', sa.String(255)),
            sa.Column('created_at', sa.DateTime()),
        )

    if 'waitlist_signups' not in tables:
        op.create_table(
            'waitlist_signups',
            _id(),
            sa.Column('name', sa.String(255), nullable=False),
            sa.Column('email', sa.String(255), nullable=False, unique=True),
            sa.Column('created_at', sa.DateTime()),
        )


def downgrade():
    for table in ('waitlist_signups', 'opt_out_log', 'early_access_emails', 'email_logs', 'audit_logs',
                  'reference_responses', 'reference_requests', 'referees', 'candidates',
                  'reference_templates', 'users'):
        op.drop_table(table)
    with op.batch_alter_table('companies') as batch:
        batch.drop_constraint('fk_companies_plan_id', type_='foreignkey')
    op.drop_table('plans')
    op.drop_table('companies')
