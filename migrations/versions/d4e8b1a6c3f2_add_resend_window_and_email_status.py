"""add rolling resend window to reference_requests and email delivery status to candidates

Revision ID: d4e8b1a6c3f2
Revises: a1f3c9d2e7b4
Create Date: 2025-10-14

"""
from alembic import op
import sqlalchemy as sa


revision = 'd4e8b1a6c3f2'
down_revision = 'a1f3c9d2e7b4'
branch_labels = None
depends_on = None


def upgrade():
    conn = op.get_bind()
    insp = sa.inspect(conn)

    cols = [c['name'] for c in insp.get_columns('reference_requests')]
    if 'resend_count_14d' not in cols:
        op.add_column('reference_requests', sa.Column('resend_count_14d', sa.Integer(), nullable=False, server_default=sa.text('0')))
    if 'resend_window_start' not in cols:
        op.add_column('reference_requests', sa.Column('resend_window_start', sa.DateTime(), nullable=True))
    if 'last_resent_at' not in cols:
        op.add_column('reference_requests', sa.Column('last_resent_at', sa.DateTime(), nullable=True))

    cols = [c['name'] for c in insp.get_columns('candidates')]
    if 'email_status' not in cols:
        op.add_column('candidates', sa.Column('email_status', sa.String(20), nullable=True, server_default='unknown'))
    if 'last_invite_sent_at' not in cols:
        op.add_column('candidates', sa.Column('last_invite_sent_at', sa.DateTime(), nullable=True))


def downgrade():
    op.drop_column('reference_requests', 'resend_count_14d')
    op.drop_column('reference_requests', 'resend_window_start')
    op.drop_column('reference_requests', 'last_resent_at')
    op.drop_column('candidates', 'email_status')
    op.drop_column('candidates', 'last_invite_sent_at')
