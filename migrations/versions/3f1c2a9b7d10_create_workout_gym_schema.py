"""Create workout gym schema

Revision ID: 3f1c2a9b7d10
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c2a9b7d10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=80), nullable=False),
        sa.Column('email', sa.String(length=120), nullable=True, unique=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100)),
        sa.Column('last_name', sa.String(length=100)),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('current_workout_score_id', sa.Integer(), nullable=True),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'courses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('number', sa.String(length=30), nullable=False, unique=True),
    )
    op.create_table(
        'terms',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=60), nullable=False),
        sa.Column('starts_on', sa.Date(), nullable=False),
        sa.Column('ends_on', sa.Date(), nullable=False),
    )
    op.create_table(
        'course_offerings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id'), nullable=False),
        sa.Column('term_id', sa.Integer(), sa.ForeignKey('terms.id'), nullable=False),
        sa.Column('label', sa.String(length=60), nullable=False),
    )
    op.create_table(
        'course_enrollments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('course_offering_id', sa.Integer(), sa.ForeignKey('course_offerings.id'), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.UniqueConstraint('user_id', 'course_offering_id', name='uq_enrollment_user_offering'),
    )
    op.create_index('ix_course_enrollments_user_id', 'course_enrollments', ['user_id'])
    op.create_index('ix_course_enrollments_course_offering_id', 'course_enrollments', ['course_offering_id'])

    op.create_table(
        'exercises',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('question', sa.Text()),
        sa.Column('created_at', sa.DateTime()),
    )
    op.create_table(
        'workouts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('is_public', sa.Boolean(), nullable=False),
        sa.Column('creator_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
    )
    op.create_index('ix_workouts_name', 'workouts', ['name'])

    op.create_table(
        'exercise_workouts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('workout_id', sa.Integer(), sa.ForeignKey('workouts.id'), nullable=False),
        sa.Column('exercise_id', sa.Integer(), sa.ForeignKey('exercises.id'), nullable=False),
        sa.Column('points', sa.Float(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.UniqueConstraint('workout_id', 'exercise_id', name='uq_exercise_workout'),
    )
    op.create_index('ix_exercise_workouts_workout_id', 'exercise_workouts', ['workout_id'])

    op.create_table(
        'workout_policies',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False, unique=True),
        sa.Column('description', sa.Text()),
        sa.Column('no_review_before_close', sa.Boolean(), nullable=False),
    )
    op.create_table(
        'workout_offerings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('workout_id', sa.Integer(), sa.ForeignKey('workouts.id'), nullable=False),
        sa.Column('course_offering_id', sa.Integer(), sa.ForeignKey('course_offerings.id'), nullable=False),
        sa.Column('workout_policy_id', sa.Integer(), sa.ForeignKey('workout_policies.id'), nullable=True),
        sa.Column('time_limit', sa.Integer(), nullable=True),
        sa.Column('opening_date', sa.DateTime(), nullable=True),
        sa.Column('soft_deadline', sa.DateTime(), nullable=True),
        sa.Column('hard_deadline', sa.DateTime(), nullable=True),
        sa.Column('published', sa.Boolean(), nullable=False),
        sa.Column('most_recent', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
        sa.UniqueConstraint('workout_id', 'course_offering_id', name='uq_workout_offering'),
    )
    op.create_index('ix_workout_offerings_workout_id', 'workout_offerings', ['workout_id'])
    op.create_index('ix_workout_offerings_course_offering_id', 'workout_offerings', ['course_offering_id'])

    op.create_table(
        'student_extensions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('workout_offering_id', sa.Integer(), sa.ForeignKey('workout_offerings.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('opening_date', sa.DateTime(), nullable=True),
        sa.Column('soft_deadline', sa.DateTime(), nullable=True),
        sa.Column('hard_deadline', sa.DateTime(), nullable=True),
        sa.Column('time_limit', sa.Integer(), nullable=True),
        sa.UniqueConstraint('workout_offering_id', 'user_id', name='uq_student_extension'),
    )
    op.create_index('ix_student_extensions_workout_offering_id', 'student_extensions', ['workout_offering_id'])
    op.create_index('ix_student_extensions_user_id', 'student_extensions', ['user_id'])

    op.create_table(
        'workout_scores',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('workout_id', sa.Integer(), sa.ForeignKey('workouts.id'), nullable=False),
        sa.Column('workout_offering_id', sa.Integer(),
                  sa.ForeignKey('workout_offerings.id', ondelete='SET NULL'), nullable=True),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('exercises_completed', sa.Integer(), nullable=False),
        sa.Column('exercises_remaining', sa.Integer(), nullable=False),
        sa.Column('closed', sa.Boolean(), nullable=False),
        sa.Column('started_at', sa.DateTime()),
        sa.Column('last_attempted_at', sa.DateTime()),
        sa.Column('completed_at', sa.DateTime()),
        sa.UniqueConstraint('user_id', 'workout_id', name='uq_workout_score_user_workout'),
    )
    op.create_index('ix_workout_scores_user_id', 'workout_scores', ['user_id'])
    op.create_index('ix_workout_scores_workout_id', 'workout_scores', ['workout_id'])

    op.create_table(
        'exercise_awards',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('workout_score_id', sa.Integer(),
                  sa.ForeignKey('workout_scores.id', ondelete='CASCADE'), nullable=False),
        sa.Column('exercise_id', sa.Integer(), sa.ForeignKey('exercises.id'), nullable=False),
        sa.Column('points', sa.Float(), nullable=False),
        sa.Column('awarded_at', sa.DateTime()),
        sa.UniqueConstraint('workout_score_id', 'exercise_id', name='uq_exercise_award_score_exercise'),
    )
    op.create_index('ix_exercise_awards_workout_score_id', 'exercise_awards', ['workout_score_id'])

    # users <-> workout_scores is a cycle, the pointer back is added last
    with op.batch_alter_table('users') as batch_op:
        batch_op.create_foreign_key(
            'fk_users_current_workout_score', 'workout_scores',
            ['current_workout_score_id'], ['id'], ondelete='SET NULL'
        )

    op.bulk_insert(
        sa.table(
            'workout_policies',
            sa.column('name', sa.String),
            sa.column('description', sa.Text),
            sa.column('no_review_before_close', sa.Boolean),
        ),
        [
            {'name': 'Practice', 'description': 'Open practice with review at any time',
             'no_review_before_close': False},
            {'name': 'Exam', 'description': 'No review until the offering closes',
             'no_review_before_close': True},
        ]
    )


def downgrade():
    with op.batch_alter_table('users') as batch_op:
        batch_op.drop_constraint('fk_users_current_workout_score', type_='foreignkey')

    op.drop_table('exercise_awards')
    op.drop_table('workout_scores')
    op.drop_table('student_extensions')
    op.drop_table('workout_offerings')
    op.drop_table('workout_policies')
    op.drop_table('exercise_workouts')
    op.drop_table('workouts')
    op.drop_table('exercises')
    op.drop_table('course_enrollments')
    op.drop_table('course_offerings')
    op.drop_table('terms')
    op.drop_table('courses')
    op.drop_table('users')
