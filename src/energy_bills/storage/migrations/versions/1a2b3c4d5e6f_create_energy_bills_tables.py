"""Create energy_bills and processing_logs tables

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table('energy_bills',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('customer_number', sa.String(length=64), nullable=True),
        sa.Column('reference_month', sa.String(length=16), nullable=True),
        sa.Column('electric_energy_quantity', sa.Float(), nullable=True),
        sa.Column('electric_energy_value', sa.Float(), nullable=True),
        sa.Column('sceee_energy_quantity', sa.Float(), nullable=True),
        sa.Column('sceee_energy_value', sa.Float(), nullable=True),
        sa.Column('gd_compensated_quantity', sa.Float(), nullable=True),
        sa.Column('gd_compensated_value', sa.Float(), nullable=True),
        sa.Column('public_lighting_contrib', sa.Float(), nullable=True),
        sa.Column('total_energy_consumption', sa.Float(), nullable=True),
        sa.Column('compensated_energy_quantity', sa.Float(), nullable=True),
        sa.Column('total_value_without_gd', sa.Float(), nullable=True),
        sa.Column('gd_economy', sa.Float(), nullable=True),
        sa.Column('original_file_name', sa.String(length=512), nullable=False),
        sa.Column('file_path', sa.String(length=1024), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('file_hash', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('supersedes_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['supersedes_id'], ['energy_bills.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('supersedes_id')
    )
    op.create_index(op.f('ix_energy_bills_customer_number'), 'energy_bills', ['customer_number'], unique=False)
    op.create_index(op.f('ix_energy_bills_reference_month'), 'energy_bills', ['reference_month'], unique=False)
    op.create_index(op.f('ix_energy_bills_file_hash'), 'energy_bills', ['file_hash'], unique=False)
    op.create_index(op.f('ix_energy_bills_status'), 'energy_bills', ['status'], unique=False)
    op.create_index(op.f('ix_energy_bills_created_at'), 'energy_bills', ['created_at'], unique=False)
    # Only the first upload of a file is unique; reprocess attempts reuse the hash
    op.create_index('uq_energy_bills_file_hash_original', 'energy_bills', ['file_hash'], unique=True,
                    postgresql_where=sa.text('supersedes_id IS NULL'),
                    sqlite_where=sa.text('supersedes_id IS NULL'))

    op.create_table('processing_logs',
        sa.Column('log_id', sa.Uuid(), nullable=False),
        sa.Column('bill_id', sa.Uuid(), nullable=False),
        sa.Column('operation', sa.String(length=100), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('details_json', sa.JSON(), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['bill_id'], ['energy_bills.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('log_id')
    )
    op.create_index(op.f('ix_processing_logs_bill_id'), 'processing_logs', ['bill_id'], unique=False)
    op.create_index(op.f('ix_processing_logs_operation'), 'processing_logs', ['operation'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_processing_logs_operation'), table_name='processing_logs')
    op.drop_index(op.f('ix_processing_logs_bill_id'), table_name='processing_logs')
    op.drop_table('processing_logs')
    op.drop_index('uq_energy_bills_file_hash_original', table_name='energy_bills')
    op.drop_index(op.f('ix_energy_bills_created_at'), table_name='energy_bills')
    op.drop_index(op.f('ix_energy_bills_status'), table_name='energy_bills')
    op.drop_index(op.f('ix_energy_bills_file_hash'), table_name='energy_bills')
    op.drop_index(op.f('ix_energy_bills_reference_month'), table_name='energy_bills')
    op.drop_index(op.f('ix_energy_bills_customer_number'), table_name='energy_bills')
    op.drop_table('energy_bills')
