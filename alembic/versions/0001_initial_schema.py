"""initial_schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_DOCUMENT = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')

QUESTION_TYPES = ('single-choice', 'multi-choice', 'true-false', 'free-text')


def upgrade() -> None:
    op.create_table(
        'videos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('duration_seconds', sa.Integer(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('is_published', sa.Boolean(), nullable=False),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_videos_id', 'videos', ['id'])
    op.create_index('ix_videos_sort_order', 'videos', ['sort_order'])
    op.create_index('ix_videos_is_published', 'videos', ['is_published'])
    # Two published videos may never share a position in the path
    op.create_index(
        'uq_videos_published_sort_order',
        'videos',
        ['sort_order'],
        unique=True,
        postgresql_where=sa.text('is_published'),
        sqlite_where=sa.text('is_published = 1'),
    )

    op.create_table(
        'quizzes',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('video_id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('passing_score_percent', sa.Integer(), nullable=False),
        sa.Column('time_limit_seconds', sa.Integer(), nullable=False),
        sa.Column('allow_retake', sa.Boolean(), nullable=False),
        sa.Column('max_attempts', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_randomized', sa.Boolean(), nullable=False),
        sa.Column('show_correct_answers', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quizzes_id', 'quizzes', ['id'])
    op.create_index('ix_quizzes_video_id', 'quizzes', ['video_id'], unique=True)

    op.create_table(
        'quiz_questions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('quiz_id', sa.Uuid(), nullable=False),
        sa.Column('text', sa.String(), nullable=False),
        sa.Column(
            'question_type',
            sa.Enum(*QUESTION_TYPES, name='question_type'),
            nullable=False,
        ),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('time_limit_seconds', sa.Integer(), nullable=False),
        sa.Column('correct_answer', sa.String(), nullable=True),
        sa.Column('explanation', sa.String(), nullable=True),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quiz_questions_id', 'quiz_questions', ['id'])
    op.create_index('ix_quiz_questions_quiz_id', 'quiz_questions', ['quiz_id'])

    op.create_table(
        'quiz_question_options',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('question_id', sa.Uuid(), nullable=False),
        sa.Column('text', sa.String(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['question_id'], ['quiz_questions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quiz_question_options_id', 'quiz_question_options', ['id'])
    op.create_index(
        'ix_quiz_question_options_question_id', 'quiz_question_options', ['question_id']
    )

    op.create_table(
        'user_progress',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('current_position', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('last_activity_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        # One progress record per learner, enforced by the database
        sa.UniqueConstraint('user_id', name='uq_user_progress_user'),
    )
    op.create_index('ix_user_progress_id', 'user_progress', ['id'])
    op.create_index('ix_user_progress_user_id', 'user_progress', ['user_id'])
    op.create_index('ix_user_progress_last_activity', 'user_progress', ['last_activity_at'])

    op.create_table(
        'completed_videos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('progress_id', sa.Uuid(), nullable=False),
        sa.Column('video_id', sa.Uuid(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['progress_id'], ['user_progress.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('progress_id', 'video_id', name='uq_completed_video_per_progress'),
    )
    op.create_index('ix_completed_videos_progress_id', 'completed_videos', ['progress_id'])
    op.create_index('ix_completed_videos_video_id', 'completed_videos', ['video_id'])

    op.create_table(
        'video_watch_times',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('progress_id', sa.Uuid(), nullable=False),
        sa.Column('video_id', sa.Uuid(), nullable=False),
        sa.Column('total_watch_time_seconds', sa.Integer(), nullable=False),
        sa.Column('last_watched_position', sa.Integer(), nullable=False),
        sa.Column('max_observed_position', sa.Integer(), nullable=False),
        sa.Column('completion_percentage', sa.Integer(), nullable=False),
        sa.Column('session_count', sa.Integer(), nullable=False),
        sa.Column('last_watched_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['progress_id'], ['user_progress.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('progress_id', 'video_id', name='uq_watch_time_per_progress'),
    )
    op.create_index('ix_video_watch_times_progress_id', 'video_watch_times', ['progress_id'])
    op.create_index('ix_video_watch_times_video_id', 'video_watch_times', ['video_id'])

    op.create_table(
        'quiz_attempts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('progress_id', sa.Uuid(), nullable=False),
        sa.Column('quiz_id', sa.Uuid(), nullable=False),
        sa.Column('video_id', sa.Uuid(), nullable=False),
        sa.Column('attempt_number', sa.Integer(), nullable=False),
        sa.Column('answers', JSON_DOCUMENT, nullable=False),
        sa.Column('question_results', JSON_DOCUMENT, nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('total_points', sa.Integer(), nullable=False),
        sa.Column('percentage', sa.Integer(), nullable=False),
        sa.Column('passed', sa.Boolean(), nullable=False),
        sa.Column('timed_out', sa.Boolean(), nullable=False),
        sa.Column('time_spent_seconds', sa.Integer(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['progress_id'], ['user_progress.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'progress_id', 'quiz_id', 'attempt_number', name='uq_quiz_attempt_number'
        ),
    )
    op.create_index('ix_quiz_attempts_progress_id', 'quiz_attempts', ['progress_id'])
    op.create_index('ix_quiz_attempts_quiz_id', 'quiz_attempts', ['quiz_id'])
    op.create_index('ix_quiz_attempts_video_id', 'quiz_attempts', ['video_id'])


def downgrade() -> None:
    op.drop_table('quiz_attempts')
    op.drop_table('video_watch_times')
    op.drop_table('completed_videos')
    op.drop_table('user_progress')
    op.drop_table('quiz_question_options')
    op.drop_table('quiz_questions')
    op.drop_table('quizzes')
    op.drop_index('uq_videos_published_sort_order', table_name='videos')
    op.drop_table('videos')

    # Drop the PostgreSQL enum type
    sa.Enum(*QUESTION_TYPES, name='question_type').drop(op.get_bind(), checkfirst=True)
