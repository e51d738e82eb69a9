"""add reimbursement attachments

Revision ID: 002_reimbursement_attachments
Revises: 001_reimbursement_core
Create Date: 2026-09-28 14:30:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002_reimbursement_attachments'
down_revision = '001_reimbursement_core'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'reimbursement_attachments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('reimbursement_id', sa.Integer(),
                  sa.ForeignKey('reimbursements.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reimbursement_item_id', sa.Integer(),
                  sa.ForeignKey('reimbursement_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_path', sa.String(length=500), nullable=False),
        sa.Column('file_size', sa.Integer()),
        sa.Column('file_type', sa.String(length=100)),
        sa.Column('uploaded_by', sa.Integer()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_reimbursement_attachments_id', 'reimbursement_attachments', ['id'])
    op.create_index(
        'ix_reimbursement_attachments_reimbursement_id',
        'reimbursement_attachments',
        ['reimbursement_id'],
    )


def downgrade() -> None:
    op.drop_index('ix_reimbursement_attachments_reimbursement_id', table_name='reimbursement_attachments')
    op.drop_index('ix_reimbursement_attachments_id', table_name='reimbursement_attachments')
    op.drop_table('reimbursement_attachments')
