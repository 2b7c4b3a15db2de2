"""Deletion request workflow schema

Revision ID: 3c1f2a9d7e41
Revises:
Create Date: 2025-07-14 10:12:03.518204

Creates users, assets, deletion_requests and audit_logs. A deletion request
keeps its asset snapshot after the asset is gone: the asset reference is
SET NULL on delete, and a partial unique index allows one pending request
per asset.
"""
from alembic import op
import sqlalchemy as sa
import sqlmodel


# revision identifiers, used by Alembic.
revision = '3c1f2a9d7e41'
down_revision = None
branch_labels = None
depends_on = None

PENDING_ONLY = sa.text("status = 'pending'")


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sqlmodel.sql.sqltypes.AutoString(length=50), nullable=False),
        sa.Column('email', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'assets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('cost', sa.Float(), nullable=False),
        sa.Column('date_purchased', sa.Date(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_assets_created_by', 'assets', ['created_by'], unique=False)

    op.create_table(
        'deletion_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('asset_id', sa.Integer(), nullable=True),
        sa.Column('asset_name', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('asset_cost', sa.Float(), nullable=False),
        sa.Column('requested_by', sa.Integer(), nullable=False),
        sa.Column('requester_email', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column('justification', sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column('status', sqlmodel.sql.sqltypes.AutoString(length=20), nullable=False),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('reviewer_email', sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column('review_comment', sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['asset_id'], ['assets.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['requested_by'], ['users.id']),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id'], ondelete='SET NULL'),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled')",
            name='ck_deletion_requests_status',
        ),
        sa.CheckConstraint(
            'length(justification) >= 10',
            name='ck_deletion_requests_justification_length',
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_deletion_requests_asset_id', 'deletion_requests', ['asset_id'], unique=False)
    op.create_index('ix_deletion_requests_requested_by', 'deletion_requests', ['requested_by'], unique=False)
    op.create_index('ix_deletion_requests_status', 'deletion_requests', ['status'], unique=False)
    op.create_index('ix_deletion_requests_created_at', 'deletion_requests', ['created_at'], unique=False)
    op.create_index(
        'uq_deletion_requests_one_pending',
        'deletion_requests',
        ['asset_id'],
        unique=True,
        postgresql_where=PENDING_ONLY,
        sqlite_where=PENDING_ONLY,
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(
            'action',
            sa.Enum(
                'ASSET_DELETED',
                'DELETION_REQUEST_SUBMITTED',
                'DELETION_REQUEST_CANCELLED',
                'DELETION_REQUEST_APPROVED',
                'DELETION_REQUEST_REJECTED',
                name='auditaction',
            ),
            nullable=False,
        ),
        sa.Column('entity_type', sa.Enum('ASSET', 'DELETION_REQUEST', name='auditentitytype'), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('entity_data', sa.JSON(), nullable=True),
        sa.Column('performed_by', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_audit_logs_entity_id', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('uq_deletion_requests_one_pending', table_name='deletion_requests')
    op.drop_index('ix_deletion_requests_created_at', table_name='deletion_requests')
    op.drop_index('ix_deletion_requests_status', table_name='deletion_requests')
    op.drop_index('ix_deletion_requests_requested_by', table_name='deletion_requests')
    op.drop_index('ix_deletion_requests_asset_id', table_name='deletion_requests')
    op.drop_table('deletion_requests')
    op.drop_index('ix_assets_created_by', table_name='assets')
    op.drop_table('assets')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
    sa.Enum(name='auditentitytype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='auditaction').drop(op.get_bind(), checkfirst=True)
