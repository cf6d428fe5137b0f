"""businesses, customers, appointments and daily compliance logs

Revision ID: 20260101_000000
Revises:
Create Date: 2026-01-01 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260101_000000'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'businesses',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=True),
        sa.Column('limit_customer_to_one_upcoming_appointment', sa.Boolean(), nullable=False,
                  server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    op.create_table(
        'customers',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('business_id', sa.BigInteger(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('full_name', sa.String(120), nullable=False),
        sa.Column('mobile', sa.String(20), nullable=True),
        sa.Column('assigned_workout_plan_ids', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('assigned_meal_plan_ids', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('ix_customers_business_id', 'customers', ['business_id'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('business_id', sa.BigInteger(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('customer_id', sa.BigInteger(), sa.ForeignKey('customers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.String(10), nullable=False),
        sa.Column('start_time', sa.String(5), nullable=False),
        sa.Column('duration_min', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('status', sa.String(32), nullable=False, server_default='SCHEDULED'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )
    op.create_index('ix_appointments_business_customer_date', 'appointments',
                    ['business_id', 'customer_id', 'date'])

    op.create_table(
        'daily_logs',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('owner_id', sa.BigInteger(), sa.ForeignKey('customers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.String(10), nullable=False),
        sa.Column('workout_status', sa.String(16), nullable=True),
        sa.Column('workout_plan_id', sa.String(64), nullable=True),
        sa.Column('workout_client_note', sa.Text(), nullable=True),
        sa.Column('workout_reported_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('nutrition_status', sa.String(24), nullable=True),
        sa.Column('meal_plan_id', sa.String(64), nullable=True),
        sa.Column('nutrition_client_note', sa.Text(), nullable=True),
        sa.Column('nutrition_client_note_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('nutrition_reported_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('nutrition_coach_note', sa.Text(), nullable=True),
        sa.Column('nutrition_coach_note_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('flagged', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.UniqueConstraint('owner_id', 'date', name='uq_daily_logs_owner_id_date'),
    )


def downgrade() -> None:
    op.drop_table('daily_logs')
    op.drop_index('ix_appointments_business_customer_date', table_name='appointments')
    op.drop_table('appointments')
    op.drop_index('ix_customers_business_id', table_name='customers')
    op.drop_table('customers')
    op.drop_table('businesses')
