"""Create exam session, attempt record and paper question tables

Revision ID: 5c2e9a71b0d4
Revises:
Create Date: 2026-10-19 09:12:41.208113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = '5c2e9a71b0d4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


scheduling_type_enum = sa.Enum('SCHEDULED', 'ON_DEMAND', name='schedulingtypeenum')
session_status_enum = sa.Enum('DRAFT', 'PUBLISHED', 'ACTIVE', 'ENDED', 'CANCELLED', name='examsessionstatusenum')
attempt_status_enum = sa.Enum('NOT_STARTED', 'IN_PROGRESS', 'SUBMITTED', 'COMPLETED', 'EXPIRED', name='attemptstatusenum')
question_type_enum = sa.Enum('SINGLE_CHOICE', 'MULTIPLE_CHOICE', 'TRUE_FALSE', 'FILL_BLANK', name='questiontypeenum')


def upgrade() -> None:
    op.create_table('exam_sessions',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('title', sa.String(), nullable=False),
    sa.Column('description', sa.String(), nullable=True),
    sa.Column('paper_ref', sa.String(), nullable=False),
    sa.Column('created_by', sa.String(), nullable=True),
    sa.Column('scheduling_type', scheduling_type_enum, nullable=False),
    sa.Column('window_start', sa.DateTime(), nullable=True),
    sa.Column('window_end', sa.DateTime(), nullable=True),
    sa.Column('available_from', sa.DateTime(), nullable=True),
    sa.Column('available_until', sa.DateTime(), nullable=True),
    sa.Column('duration_minutes', sa.Integer(), nullable=False),
    sa.Column('max_attempts', sa.Integer(), nullable=False),
    sa.Column('allow_review', sa.Boolean(), nullable=False),
    sa.Column('shuffle_questions', sa.Boolean(), nullable=False),
    sa.Column('shuffle_options', sa.Boolean(), nullable=False),
    sa.Column('passing_score', sa.Float(), nullable=False),
    sa.Column('auto_grade', sa.Boolean(), nullable=False),
    sa.Column('participants', sa.JSON(), nullable=False),
    sa.Column('status', session_status_enum, nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_exam_sessions_id'), 'exam_sessions', ['id'], unique=False)
    op.create_index(op.f('ix_exam_sessions_title'), 'exam_sessions', ['title'], unique=False)
    op.create_index(op.f('ix_exam_sessions_paper_ref'), 'exam_sessions', ['paper_ref'], unique=False)
    op.create_index(op.f('ix_exam_sessions_status'), 'exam_sessions', ['status'], unique=False)

    op.create_table('attempt_records',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('session_id', sa.Integer(), nullable=False),
    sa.Column('student_id', sa.String(), nullable=False),
    sa.Column('attempt_number', sa.Integer(), nullable=False),
    sa.Column('status', attempt_status_enum, nullable=False),
    sa.Column('version', sa.Integer(), nullable=False),
    sa.Column('started_at', sa.DateTime(), nullable=True),
    sa.Column('deadline', sa.DateTime(), nullable=True),
    sa.Column('submitted_at', sa.DateTime(), nullable=True),
    sa.Column('answers', sa.JSON(), nullable=False),
    sa.Column('score', sa.Float(), nullable=True),
    sa.Column('max_score', sa.Float(), nullable=True),
    sa.Column('correct_count', sa.Integer(), nullable=True),
    sa.Column('total_questions', sa.Integer(), nullable=True),
    sa.Column('is_passed', sa.Boolean(), nullable=True),
    sa.Column('percentage', sa.Float(), nullable=True),
    sa.Column('grade', sa.String(length=1), nullable=True),
    sa.Column('anomalies', sa.JSON(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    sa.ForeignKeyConstraint(['session_id'], ['exam_sessions.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('session_id', 'student_id', 'attempt_number', name='uq_attempt_records_pair_number')
    )
    op.create_index(op.f('ix_attempt_records_id'), 'attempt_records', ['id'], unique=False)
    op.create_index(op.f('ix_attempt_records_session_id'), 'attempt_records', ['session_id'], unique=False)
    op.create_index(op.f('ix_attempt_records_student_id'), 'attempt_records', ['student_id'], unique=False)
    op.create_index('ix_attempt_records_status_deadline', 'attempt_records', ['status', 'deadline'], unique=False)

    op.create_table('paper_questions',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('paper_ref', sa.String(), nullable=False),
    sa.Column('question_id', sa.String(), nullable=False),
    sa.Column('question_type', question_type_enum, nullable=False),
    sa.Column('correct_answer', sa.JSON(), nullable=False),
    sa.Column('points', sa.Float(), nullable=False),
    sa.Column('position', sa.Integer(), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('paper_ref', 'question_id', name='uq_paper_questions_paper_question')
    )
    op.create_index(op.f('ix_paper_questions_id'), 'paper_questions', ['id'], unique=False)
    op.create_index(op.f('ix_paper_questions_paper_ref'), 'paper_questions', ['paper_ref'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_paper_questions_paper_ref'), table_name='paper_questions')
    op.drop_index(op.f('ix_paper_questions_id'), table_name='paper_questions')
    op.drop_table('paper_questions')

    op.drop_index('ix_attempt_records_status_deadline', table_name='attempt_records')
    op.drop_index(op.f('ix_attempt_records_student_id'), table_name='attempt_records')
    op.drop_index(op.f('ix_attempt_records_session_id'), table_name='attempt_records')
    op.drop_index(op.f('ix_attempt_records_id'), table_name='attempt_records')
    op.drop_table('attempt_records')

    op.drop_index(op.f('ix_exam_sessions_status'), table_name='exam_sessions')
    op.drop_index(op.f('ix_exam_sessions_paper_ref'), table_name='exam_sessions')
    op.drop_index(op.f('ix_exam_sessions_title'), table_name='exam_sessions')
    op.drop_index(op.f('ix_exam_sessions_id'), table_name='exam_sessions')
    op.drop_table('exam_sessions')

    question_type_enum.drop(op.get_bind(), checkfirst=True)
    attempt_status_enum.drop(op.get_bind(), checkfirst=True)
    session_status_enum.drop(op.get_bind(), checkfirst=True)
    scheduling_type_enum.drop(op.get_bind(), checkfirst=True)
