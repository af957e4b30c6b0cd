"""initial schema

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c2e3f4b5d6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SKILL_COLUMNS = (
    'pushup_score', 'pullup_score', 'sprint_time', 'run_5k_time', 'vertical_jump',
    'grip_strength', 'sprint_50m', 'shuttle_run', 'yoyo_test',
    'mood_score', 'sleep_score',
    'total_calories', 'protein', 'carbohydrates', 'fats', 'water_intake',
    'batting_grip', 'batting_stance', 'batting_balance', 'cocking_of_wrist', 'back_lift',
    'top_hand_dominance', 'high_elbow', 'running_between_wickets', 'calling',
    'bowling_grip', 'run_up', 'back_foot_landing', 'front_foot_landing', 'hip_drive',
    'back_foot_drag', 'non_bowling_arm', 'release', 'follow_through',
    'positioning_of_ball', 'pick_up', 'aim', 'throw', 'soft_hands', 'receiving',
    'high_catch', 'flat_catch',
)

PRIORITIES = ('LOW', 'MEDIUM', 'HIGH', 'URGENT')


def upgrade() -> None:
    op.create_table('user',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('role', sa.Enum('ATHLETE', 'COACH', 'ADMIN', name='userrole'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_email', 'user', ['email'], unique=True)
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table('coach',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('academy', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_coach_user_id', 'coach', ['user_id'], unique=True)

    op.create_table('student',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('student_name', sa.String(), nullable=False),
        sa.Column('username', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('age', sa.Integer(), nullable=False),
        sa.Column('height', sa.Float(), nullable=False),
        sa.Column('weight', sa.Float(), nullable=False),
        sa.Column('academy', sa.String(), nullable=False),
        sa.Column('sport', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.Column('coach_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ),
        sa.ForeignKeyConstraint(['coach_id'], ['coach.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_student_user_id', 'student', ['user_id'], unique=True)
    op.create_index('ix_student_coach_id', 'student', ['coach_id'])

    op.create_table('team',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('coach_id', sa.Uuid(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['coach_id'], ['coach.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_team_coach_id', 'team', ['coach_id'])

    op.create_table('team_member',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('team_id', sa.Uuid(), nullable=False),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['team_id'], ['team.id'], ),
        sa.ForeignKeyConstraint(['student_id'], ['student.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('team_id', 'student_id', name='uq_team_member'),
    )
    op.create_index('ix_team_member_team_id', 'team_member', ['team_id'])
    op.create_index('ix_team_member_student_id', 'team_member', ['student_id'])

    op.create_table('skills',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        *[sa.Column(name, sa.Float(), nullable=True) for name in SKILL_COLUMNS],
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['student.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_skills_student_id', 'skills', ['student_id'], unique=True)

    op.create_table('skill_history',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('physical_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('nutrition_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('mental_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('wellness_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('technique_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('tactical_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('is_match_day', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('match_id', sa.String(), nullable=True),
        sa.Column('coach_feedback', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['student.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('student_id', 'date', name='uq_skill_history_student_date'),
    )
    op.create_index('ix_skill_history_student_id', 'skill_history', ['student_id'])

    op.create_table('action',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('priority', sa.Enum(*PRIORITIES, name='actionpriority'), nullable=False),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('coach_id', sa.Uuid(), nullable=False),
        sa.Column('team_id', sa.Uuid(), nullable=True),
        sa.Column('is_completed', sa.Boolean(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('is_acknowledged', sa.Boolean(), nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('demo_media_url', sa.String(), nullable=True),
        sa.Column('demo_media_type', sa.String(), nullable=True),
        sa.Column('demo_file_name', sa.String(), nullable=True),
        sa.Column('demo_file_size', sa.Integer(), nullable=True),
        sa.Column('demo_upload_method', sa.String(), nullable=True),
        sa.Column('proof_media_url', sa.String(), nullable=True),
        sa.Column('proof_media_type', sa.String(), nullable=True),
        sa.Column('proof_file_name', sa.String(), nullable=True),
        sa.Column('proof_file_size', sa.Integer(), nullable=True),
        sa.Column('proof_upload_method', sa.String(), nullable=True),
        sa.Column('proof_uploaded_at', sa.DateTime(), nullable=True),
        sa.Column('proof_processing_time', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['student.id'], ),
        sa.ForeignKeyConstraint(['coach_id'], ['coach.id'], ),
        sa.ForeignKeyConstraint(['team_id'], ['team.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_action_student_id', 'action', ['student_id'])
    op.create_index('ix_action_coach_id', 'action', ['coach_id'])
    op.create_index('ix_action_team_id', 'action', ['team_id'])

    op.create_table('feedback',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('content', sa.String(), nullable=False),
        sa.Column('category', sa.Enum('GENERAL', 'TECHNICAL', 'PHYSICAL', 'MENTAL', 'TACTICAL', name='feedbackcategory'), nullable=False),
        sa.Column('priority', sa.Enum(*PRIORITIES, name='feedbackpriority'), nullable=False),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('coach_id', sa.Uuid(), nullable=False),
        sa.Column('team_id', sa.Uuid(), nullable=True),
        sa.Column('is_acknowledged', sa.Boolean(), nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['student.id'], ),
        sa.ForeignKeyConstraint(['coach_id'], ['coach.id'], ),
        sa.ForeignKeyConstraint(['team_id'], ['team.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_feedback_student_id', 'feedback', ['student_id'])
    op.create_index('ix_feedback_coach_id', 'feedback', ['coach_id'])
    op.create_index('ix_feedback_team_id', 'feedback', ['team_id'])

    op.create_table('badge_category',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('icon', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table('badge',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('motivational_text', sa.String(), nullable=False),
        sa.Column('level', sa.String(), nullable=False),
        sa.Column('icon', sa.String(), nullable=False),
        sa.Column('sport', sa.String(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('category_id', sa.Uuid(), nullable=False),
        sa.Column('created_by_coach_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['badge_category.id'], ),
        sa.ForeignKeyConstraint(['created_by_coach_id'], ['coach.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_badge_sport', 'badge', ['sport'])
    op.create_index('ix_badge_is_active', 'badge', ['is_active'])

    op.create_table('badge_rule',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('badge_id', sa.Uuid(), nullable=False),
        sa.Column('rule_type', sa.Enum('SKILLS_METRIC', 'SKILLS_AVERAGE', 'WELLNESS_STREAK', name='ruletype'), nullable=False),
        sa.Column('field_name', sa.String(), nullable=False),
        sa.Column('operator', sa.Enum('GT', 'GTE', 'LT', 'LTE', 'EQ', 'NEQ', 'BETWEEN', name='ruleoperator'), nullable=False),
        sa.Column('value', sa.String(), nullable=False),
        sa.Column('weight', sa.Float(), nullable=False),
        sa.Column('is_required', sa.Boolean(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['badge_id'], ['badge.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_badge_rule_badge_id', 'badge_rule', ['badge_id'])

    op.create_table('student_badge',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('badge_id', sa.Uuid(), nullable=False),
        sa.Column('awarded_at', sa.DateTime(), nullable=False),
        sa.Column('score', sa.Float(), nullable=False),
        sa.Column('progress', sa.Float(), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(), nullable=True),
        sa.Column('revoked_by', sa.Uuid(), nullable=True),
        sa.Column('revoke_reason', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['student_id'], ['student.id'], ),
        sa.ForeignKeyConstraint(['badge_id'], ['badge.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_student_badge_student_id', 'student_badge', ['student_id'])
    op.create_index('ix_student_badge_badge_id', 'student_badge', ['badge_id'])
    # Une seule attribution active par (eleve, badge)
    op.create_index(
        'uq_student_badge_active', 'student_badge', ['student_id', 'badge_id'],
        unique=True,
        postgresql_where=sa.text('is_revoked = false'),
    )

    op.create_table('badge_evaluation_queue',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('reason', sa.String(), nullable=False, server_default='skills_updated'),
        sa.Column('status', sa.Enum('PENDING', 'IN_PROGRESS', 'COMPLETED', 'FAILED', name='evaluationstatus'), nullable=False, server_default='PENDING'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_attempts', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('last_error', sa.String(), nullable=True),
        sa.Column('new_badges', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('next_retry_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['student.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_badge_evaluation_queue_student_id', 'badge_evaluation_queue', ['student_id'])
    op.create_index('ix_badge_evaluation_queue_status', 'badge_evaluation_queue', ['status'])


def downgrade() -> None:
    op.drop_table('badge_evaluation_queue')
    op.drop_index('uq_student_badge_active', table_name='student_badge')
    op.drop_table('student_badge')
    op.drop_table('badge_rule')
    op.drop_table('badge')
    op.drop_table('badge_category')
    op.drop_table('feedback')
    op.drop_table('action')
    op.drop_table('skill_history')
    op.drop_table('skills')
    op.drop_table('team_member')
    op.drop_table('team')
    op.drop_table('student')
    op.drop_table('coach')
    op.drop_table('user')
    sa.Enum(name='evaluationstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='ruleoperator').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='ruletype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='feedbackpriority').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='feedbackcategory').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='actionpriority').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='userrole').drop(op.get_bind(), checkfirst=True)
