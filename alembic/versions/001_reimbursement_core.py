"""reimbursement core tables

Revision ID: 001_reimbursement_core
Revises:
Create Date: 2026-09-14 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_reimbursement_core'
down_revision = None
branch_labels = None
depends_on = None


def _lookup_table(name: str, *extra_columns) -> None:
    op.create_table(
        name,
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=50), unique=True),
        sa.Column('description', sa.Text()),
        *extra_columns,
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(f'ix_{name}_id', name, ['id'])


def upgrade() -> None:
    # Lookup tables owned by master data
    _lookup_table('departments', sa.Column('status', sa.String(length=20), server_default='active'))
    _lookup_table(
        'cost_centers',
        sa.Column('budget', sa.Numeric(12, 2)),
        sa.Column('department_id', sa.Integer(), sa.ForeignKey('departments.id')),
        sa.Column('status', sa.String(length=20), server_default='active'),
    )
    _lookup_table(
        'projects',
        sa.Column('start_date', sa.Date()),
        sa.Column('end_date', sa.Date()),
        sa.Column('status', sa.String(length=20), server_default='active'),
    )
    _lookup_table('expense_categories')

    op.create_table(
        'reimbursements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('department_id', sa.Integer(), sa.ForeignKey('departments.id')),
        sa.Column('cost_center_id', sa.Integer(), sa.ForeignKey('cost_centers.id')),
        sa.Column('project_id', sa.Integer(), sa.ForeignKey('projects.id')),
        sa.Column('request_date', sa.Date(), server_default=sa.func.current_date()),
        sa.Column('status', sa.String(length=50), server_default='draft'),
        sa.Column('total_amount', sa.Numeric(10, 2), server_default='0'),
        sa.Column('description', sa.Text()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_reimbursements_id', 'reimbursements', ['id'])
    op.create_index('ix_reimbursements_user_id', 'reimbursements', ['user_id'])
    op.create_index('ix_reimbursements_status', 'reimbursements', ['status'])

    op.create_table(
        'reimbursement_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('reimbursement_id', sa.Integer(),
                  sa.ForeignKey('reimbursements.id', ondelete='CASCADE'), nullable=False),
        sa.Column('expense_category_id', sa.Integer(), sa.ForeignKey('expense_categories.id')),
        sa.Column('expense_type', sa.String(length=50), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('meal_type', sa.String(length=50)),
        sa.Column('people_count', sa.Integer()),
        sa.Column('travel_purpose', sa.String(length=255)),
        sa.Column('lodging_city', sa.String(length=255)),
        sa.Column('status', sa.String(length=50), server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_reimbursement_items_id', 'reimbursement_items', ['id'])
    op.create_index('ix_reimbursement_items_reimbursement_id', 'reimbursement_items', ['reimbursement_id'])

    op.bulk_insert(
        sa.table('expense_categories', sa.column('name', sa.String), sa.column('code', sa.String)),
        [
            {'name': 'Food', 'code': 'FOOD'},
            {'name': 'Travel', 'code': 'TRAVEL'},
            {'name': 'Accommodation', 'code': 'ACCOMMODATION'},
            {'name': 'Material', 'code': 'MATERIAL'},
            {'name': 'Others', 'code': 'OTHERS'},
        ],
    )


def downgrade() -> None:
    op.drop_table('reimbursement_items')
    op.drop_table('reimbursements')
    op.drop_table('expense_categories')
    op.drop_table('projects')
    op.drop_table('cost_centers')
    op.drop_table('departments')
