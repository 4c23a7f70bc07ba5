"""add account status to users

Revision ID: e5f9c2a7b1d3
Revises: d4e8b1a6c3f2
Create Date: 2025-11-03

"""
from alembic import op
import sqlalchemy as sa


revision = 'e5f9c2a7b1d3'
down_revision = 'd4e8b1a6c3f2'
branch_labels = None
depends_on = None


def upgrade():
    conn = op.get_bind()
    insp = sa.inspect(conn)

    cols = [c['name'] for c in insp.get_columns('users')]
    if 'status' not in cols:
        op.add_column('users', sa.Column('status', sa.String(20), nullable=False, server_default='active'))


def downgrade():
    op.drop_column('users', 'status')
