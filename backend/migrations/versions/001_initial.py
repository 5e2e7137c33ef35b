"""Initial migration - create all tables

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates all database tables for the Classroom Picker service:
- students: Owner-partitioned roster with point balance and archive flag
- call_history: Immutable record of every student called on
- pk_sessions: Head-to-head sessions
- pk_participants: The two students of each session
- point_records: Ledger of point balance changes

Also creates indexes for the owner-scoped query patterns.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Students Table ────────────────────────────────────────
    op.create_table(
        'students',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('student_no', sa.Text(), nullable=True),
        sa.Column('avatar', sa.Text(), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_students_owner_archived', 'students', ['owner_id', 'is_archived'])

    # ── Call History Table ────────────────────────────────────
    op.create_table(
        'call_history',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('student_id', sa.String(36),
                  sa.ForeignKey('students.id', ondelete='SET NULL'), nullable=True),
        sa.Column('mode', sa.Text(), nullable=False, server_default='RANDOM'),
        sa.Column('called_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_call_history_owner_called_at', 'call_history', ['owner_id', 'called_at'])

    # ── PK Sessions Table ─────────────────────────────────────
    op.create_table(
        'pk_sessions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('mode', sa.Text(), nullable=False, server_default='RANDOM'),
        sa.Column('topic', sa.Text(), nullable=True),
        sa.Column('reward_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='ONGOING'),
        sa.Column('winner_id', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column('finished_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_pk_sessions_owner_created_at', 'pk_sessions', ['owner_id', 'created_at'])

    # ── PK Participants Table ─────────────────────────────────
    op.create_table(
        'pk_participants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('session_id', sa.String(36),
                  sa.ForeignKey('pk_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', sa.String(36),
                  sa.ForeignKey('students.id'), nullable=False),
        sa.Column('is_winner', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_pk_participants_session_id', 'pk_participants', ['session_id'])

    # ── Point Records Table ───────────────────────────────────
    op.create_table(
        'point_records',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('student_id', sa.String(36),
                  sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_point_records_student_id', 'point_records', ['student_id'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index('ix_point_records_student_id', table_name='point_records')
    op.drop_table('point_records')
    op.drop_index('ix_pk_participants_session_id', table_name='pk_participants')
    op.drop_table('pk_participants')
    op.drop_index('ix_pk_sessions_owner_created_at', table_name='pk_sessions')
    op.drop_table('pk_sessions')
    op.drop_index('ix_call_history_owner_called_at', table_name='call_history')
    op.drop_table('call_history')
    op.drop_index('ix_students_owner_archived', table_name='students')
    op.drop_table('students')
