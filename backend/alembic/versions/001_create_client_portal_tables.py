"""Create client portal tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

WHAT: Creates organizations, contacts, leads, users, quotations and the
OTP-gated decision tables (quotation_otps, quotation_actions).

WHY: Client decisions on quotations need:
1. One-time codes scoped to a (quotation, user) pair, stored only as hashes
2. An append-only audit row per confirmed decision
3. Status columns recording who decided and when

HOW: PostgreSQL enum types are created up front because quotationactiontype
is shared by two tables. OTP rows are never deleted; their lifecycle is
expressed by consumed_at / superseded_at / expires_at.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_role_enum = postgresql.ENUM('ADMIN', 'CLIENT', name='userrole', create_type=False)
quotation_status_enum = postgresql.ENUM(
    'UPLOADED', 'SENT', 'ACCEPTED', 'REJECTED',
    name='quotationstatus',
    create_type=False,
)
quotation_action_type_enum = postgresql.ENUM(
    'ACCEPT', 'REJECT',
    name='quotationactiontype',
    create_type=False,
)


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
    ]


def upgrade() -> None:
    """
    Create enum types, tables and indexes.

    Indexes follow the lookups of the decision workflow:
    - quotation_otps by (quotation_id, user_id) for live-code lookup
    - quotation_otps by expires_at for expiry sweeps
    - quotation_actions by quotation and by user for audit reads
    """
    bind = op.get_bind()
    user_role_enum.create(bind, checkfirst=True)
    quotation_status_enum.create(bind, checkfirst=True)
    quotation_action_type_enum.create(bind, checkfirst=True)

    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_organizations_id', 'organizations', ['id'])
    op.create_index('ix_organizations_name', 'organizations', ['name'])

    op.create_table(
        'contacts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_contacts_id', 'contacts', ['id'])
    op.create_index('ix_contacts_email', 'contacts', ['email'])

    op.create_table(
        'leads',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('org_id', sa.Integer(), nullable=False),
        sa.Column('contact_id', sa.Integer(), nullable=True),
        sa.Column('contact_name', sa.String(length=255), nullable=True),
        sa.Column('contact_email', sa.String(length=255), nullable=True),
        sa.Column('contact_phone', sa.String(length=50), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['contact_id'], ['contacts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_leads_id', 'leads', ['id'])
    op.create_index('ix_leads_org_id', 'leads', ['org_id'])

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False, server_default=''),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=True),
        sa.Column('role', user_role_enum, nullable=False, server_default='CLIENT'),
        sa.Column('org_id', sa.Integer(), nullable=True),
        sa.Column('lead_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_org_id', 'users', ['org_id'])
    op.create_index('ix_users_lead_id', 'users', ['lead_id'])

    op.create_table(
        'quotations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('lead_id', sa.Integer(), nullable=False, comment='Owning lead'),
        sa.Column('quotation_number', sa.String(length=50), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='USD'),
        sa.Column('status', quotation_status_enum, nullable=False, server_default='UPLOADED'),
        sa.Column('uploaded_by', sa.Integer(), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('status_changed_at', sa.DateTime(), nullable=True),
        sa.Column('status_changed_by', sa.Integer(), nullable=True),
        sa.Column('client_notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['uploaded_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['status_changed_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('quotation_number'),
    )
    op.create_index('ix_quotations_id', 'quotations', ['id'])
    op.create_index('ix_quotations_lead_id', 'quotations', ['lead_id'])
    op.create_index('ix_quotations_status', 'quotations', ['status'])

    op.create_table(
        'quotation_otps',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quotation_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('action_type', quotation_action_type_enum, nullable=False),
        # HMAC-SHA256 hex digest; the plaintext code is never stored
        sa.Column('code_hash', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('consumed_at', sa.DateTime(), nullable=True),
        sa.Column('superseded_at', sa.DateTime(), nullable=True),
        sa.Column('created_ip', sa.String(length=45), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['quotation_id'], ['quotations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quotation_otps_id', 'quotation_otps', ['id'])
    op.create_index('ix_quotation_otps_user_id', 'quotation_otps', ['user_id'])
    op.create_index('ix_quotation_otps_quotation_user', 'quotation_otps', ['quotation_id', 'user_id'])
    op.create_index('ix_quotation_otps_expires_at', 'quotation_otps', ['expires_at'])

    op.create_table(
        'quotation_actions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quotation_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('action_type', quotation_action_type_enum, nullable=False),
        sa.Column('performed_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(['quotation_id'], ['quotations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quotation_actions_id', 'quotation_actions', ['id'])
    op.create_index('ix_quotation_actions_quotation_id', 'quotation_actions', ['quotation_id'])
    op.create_index('ix_quotation_actions_user_id', 'quotation_actions', ['user_id'])


def downgrade() -> None:
    """Drop tables in reverse dependency order, then the enum types."""
    op.drop_table('quotation_actions')
    op.drop_table('quotation_otps')
    op.drop_table('quotations')
    op.drop_table('users')
    op.drop_table('leads')
    op.drop_table('contacts')
    op.drop_table('organizations')

    bind = op.get_bind()
    quotation_action_type_enum.drop(bind, checkfirst=True)
    quotation_status_enum.drop(bind, checkfirst=True)
    user_role_enum.drop(bind, checkfirst=True)
