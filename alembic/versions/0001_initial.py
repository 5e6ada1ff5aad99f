"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def upgrade() -> None:
    op.create_table('users',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=200)),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='client'),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table('projects',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('owner_id', sa.String(length=64), sa.ForeignKey('users.id')),
        sa.Column('name', sa.String(length=300), nullable=False),
        sa.Column('client', sa.String(length=300)),
        sa.Column('phases', sa.JSON()),
        sa.Column('tasks', sa.JSON()),
        sa.Column('custom_fields', sa.JSON()),
        sa.Column('progress_status', sa.String(length=20), nullable=False, server_default='Pending'),
        sa.Column('progress_percent', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
    )

    op.create_table('budget_items',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('project_id', sa.String(length=64), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('item_type', sa.String(length=20), nullable=False, server_default='original'),
        sa.Column('created_by', sa.String(length=64), sa.ForeignKey('users.id')),
        sa.Column('created_at', sa.DateTime()),
    )
    op.create_index('ix_budget_items_project_id', 'budget_items', ['project_id'])

    op.create_table('project_notes',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('project_id', sa.String(length=64), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('note_tag', sa.String(length=20), nullable=False, server_default='general'),
        sa.Column('author_id', sa.String(length=64), sa.ForeignKey('users.id')),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
    )
    op.create_index('ix_project_notes_project_id', 'project_notes', ['project_id'])

    op.create_table('project_permits',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('project_id', sa.String(length=64), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('permit_type', sa.String(length=40), nullable=False),
        sa.Column('status', sa.String(length=40), nullable=False, server_default='Pending'),
        sa.Column('submitted_date', sa.String(length=10)),
        sa.Column('approved_date', sa.String(length=10)),
        sa.Column('permit_number', sa.String(length=120)),
        sa.Column('notes', sa.Text()),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
    )
    op.create_index('ix_project_permits_project_id', 'project_permits', ['project_id'])

    op.create_table('project_utilities',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('project_id', sa.String(length=64), sa.ForeignKey('projects.id'), nullable=False),
        sa.Column('utility_name', sa.String(length=200), nullable=False),
        sa.Column('application_status', sa.String(length=40), nullable=False, server_default='Pending'),
        sa.Column('application_submitted_date', sa.String(length=10)),
        sa.Column('design_review_status', sa.String(length=120)),
        sa.Column('meter_set_date', sa.String(length=10)),
        sa.Column('service_activation_date', sa.String(length=10)),
        sa.Column('notes', sa.Text()),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
    )
    op.create_index('ix_project_utilities_project_id', 'project_utilities', ['project_id'])

def downgrade() -> None:
    for table in ['project_utilities', 'project_permits', 'project_notes', 'budget_items', 'projects', 'users']:
        op.drop_table(table)
