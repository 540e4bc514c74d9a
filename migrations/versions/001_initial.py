"""Initial migration - create all tables

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates all database tables for the Leave Portal:
- users: Students and admins with their remaining leave balance
- leaves: Leave requests with review and remediation flags
- tests: Assessments bound 1:1 to a leave
- test_results: Scored submissions, one per (test, student)
- question_bank: Curated MCQs for automatic test generation

Also creates indexes for common query patterns.
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
    # ── Users Table ───────────────────────────────────────────
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('role', sa.String(16), nullable=False, server_default='student'),
        sa.Column('department', sa.Text(), nullable=True),
        sa.Column('leave_balance', sa.Integer(), nullable=False, server_default='20'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )

    # ── Leaves Table ──────────────────────────────────────────
    op.create_table(
        'leaves',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('student_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('leave_type', sa.String(16), nullable=False, server_default='personal'),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('total_days', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('admin_remarks', sa.Text(), nullable=True),
        sa.Column('reviewed_by_id', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('retest_requested', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('retest_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('retest_used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reevaluation_used', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('balance_deducted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )

    op.create_index('ix_leaves_student_status', 'leaves', ['student_id', 'status'])
    op.create_index('ix_leaves_dates', 'leaves', ['start_date', 'end_date'])

    # ── Tests Table ───────────────────────────────────────────
    op.create_table(
        'tests',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('leave_id', sa.String(36), sa.ForeignKey('leaves.id'),
                  nullable=False, unique=True),
        sa.Column('created_by_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('mcq_questions', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('coding_questions', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('total_marks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('pass_marks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='3600'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )

    # ── Test Results Table ────────────────────────────────────
    op.create_table(
        'test_results',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('test_id', sa.String(36), sa.ForeignKey('tests.id'), nullable=False),
        sa.Column('student_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('leave_id', sa.String(36), sa.ForeignKey('leaves.id'), nullable=False),
        sa.Column('mcq_answers', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('coding_answers', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('mcq_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('coding_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('percentage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('passed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('pass_marks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('submitted_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('reevaluated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('time_taken', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tab_switch_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('feedback', sa.Text(), nullable=True),
        # one stored submission per (test, student); closes the double-submit race
        sa.UniqueConstraint('test_id', 'student_id', name='uq_test_results_test_student'),
    )

    op.create_index('ix_test_results_student_id', 'test_results', ['student_id'])
    op.create_index('ix_test_results_leave_id', 'test_results', ['leave_id'])
    op.create_index('ix_test_results_passed', 'test_results', ['passed'])

    # ── Question Bank Table ───────────────────────────────────
    op.create_table(
        'question_bank',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('options', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('correct_answer', sa.Integer(), nullable=False),
        sa.Column('subject', sa.String(64), nullable=False),
        sa.Column('difficulty', sa.String(16), nullable=False, server_default='Medium'),
        sa.Column('marks', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )

    op.create_index('ix_question_bank_lookup', 'question_bank',
                    ['subject', 'difficulty', 'is_active'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index('ix_question_bank_lookup', table_name='question_bank')
    op.drop_table('question_bank')
    op.drop_index('ix_test_results_passed', table_name='test_results')
    op.drop_index('ix_test_results_leave_id', table_name='test_results')
    op.drop_index('ix_test_results_student_id', table_name='test_results')
    op.drop_table('test_results')
    op.drop_table('tests')
    op.drop_index('ix_leaves_dates', table_name='leaves')
    op.drop_index('ix_leaves_student_status', table_name='leaves')
    op.drop_table('leaves')
    op.drop_table('users')
