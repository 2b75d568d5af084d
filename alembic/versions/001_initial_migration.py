"""Initial database schema.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

plan_type = sa.Enum('free', 'pro', 'agency', name='plantype')
user_role = sa.Enum('admin', 'user', name='userrole')


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('plan', plan_type, nullable=False),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_plan'), 'users', ['plan'])
    op.create_index(op.f('ix_users_stripe_customer_id'), 'users', ['stripe_customer_id'], unique=True)

    # Create subscriptions table
    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('stripe_subscription_id', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('plan', plan_type, nullable=False),
        sa.Column('current_period_start', sa.DateTime(), nullable=True),
        sa.Column('current_period_end', sa.DateTime(), nullable=True),
        sa.Column('trial_start', sa.DateTime(), nullable=True),
        sa.Column('trial_end', sa.DateTime(), nullable=True),
        sa.Column('cancel_at', sa.DateTime(), nullable=True),
        sa.Column('canceled_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_subscriptions_user_id'), 'subscriptions', ['user_id'])
    op.create_index(
        op.f('ix_subscriptions_stripe_subscription_id'),
        'subscriptions',
        ['stripe_subscription_id'],
        unique=True,
    )
    op.create_index(op.f('ix_subscriptions_status'), 'subscriptions', ['status'])

    # Create sites table
    op.create_table(
        'sites',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('url', sa.String(length=2048), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('last_scan_score', sa.Integer(), nullable=True),
        sa.Column('last_scan_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'url', name='uq_sites_user_url')
    )
    op.create_index(op.f('ix_sites_user_id'), 'sites', ['user_id'])

    # Create scan_logs table
    op.create_table(
        'scan_logs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=False),
        sa.Column('url', sa.String(length=2048), nullable=False),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('violations_count', sa.Integer(), nullable=False),
        sa.Column('scan_duration_ms', sa.Integer(), nullable=True),
        sa.Column('violations', sa.JSON(), nullable=True),
        sa.Column('passes', sa.Integer(), nullable=True),
        sa.Column('incomplete', sa.Integer(), nullable=True),
        sa.Column('site_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['site_id'], ['sites.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_scan_logs_user_id'), 'scan_logs', ['user_id'])
    op.create_index(op.f('ix_scan_logs_ip_address'), 'scan_logs', ['ip_address'])
    op.create_index(op.f('ix_scan_logs_site_id'), 'scan_logs', ['site_id'])
    op.create_index(op.f('ix_scan_logs_created_at'), 'scan_logs', ['created_at'])
    # Rate-limit lookups filter on both
    op.create_index('ix_scan_logs_ip_created', 'scan_logs', ['ip_address', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_scan_logs_ip_created', table_name='scan_logs')
    op.drop_index(op.f('ix_scan_logs_created_at'), table_name='scan_logs')
    op.drop_index(op.f('ix_scan_logs_site_id'), table_name='scan_logs')
    op.drop_index(op.f('ix_scan_logs_ip_address'), table_name='scan_logs')
    op.drop_index(op.f('ix_scan_logs_user_id'), table_name='scan_logs')
    op.drop_table('scan_logs')

    op.drop_index(op.f('ix_sites_user_id'), table_name='sites')
    op.drop_table('sites')

    op.drop_index(op.f('ix_subscriptions_status'), table_name='subscriptions')
    op.drop_index(op.f('ix_subscriptions_stripe_subscription_id'), table_name='subscriptions')
    op.drop_index(op.f('ix_subscriptions_user_id'), table_name='subscriptions')
    op.drop_table('subscriptions')

    op.drop_index(op.f('ix_users_stripe_customer_id'), table_name='users')
    op.drop_index(op.f('ix_users_plan'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')

    plan_type.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
