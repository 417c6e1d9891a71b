"""create user, game_score and game_session tables

Revision ID: 4c7a9e2d1b30
Revises:
Create Date: 2026-10-17 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7a9e2d1b30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=120), nullable=True),
        sa.Column('password_hash', sa.String(length=128), nullable=False),
        sa.Column('avatar', sa.String(length=256), nullable=True),
        sa.Column('achievements', sa.JSON(), nullable=False),
        sa.Column('total_score', sa.Integer(), nullable=False),
        sa.Column('games_played', sa.Integer(), nullable=False),
        sa.Column('correct_answers', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('user') as batch_op:
        batch_op.create_index(batch_op.f('ix_user_username'), ['username'], unique=True)
        batch_op.create_index(batch_op.f('ix_user_email'), ['email'], unique=True)

    op.create_table(
        'game_score',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('final_score', sa.Integer(), nullable=False),
        sa.Column('difficulty', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('correct_answers', sa.Integer(), nullable=False),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('game_type', sa.String(length=16), nullable=False),
        sa.Column('session_id', sa.String(length=64), nullable=True),
        sa.Column('time_spent', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('game_score') as batch_op:
        batch_op.create_index(batch_op.f('ix_game_score_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_game_score_difficulty'), ['difficulty'], unique=False)
        batch_op.create_index(batch_op.f('ix_game_score_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_game_score_created_at'), ['created_at'], unique=False)

    op.create_table(
        'game_session',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('difficulty', sa.String(length=16), nullable=False),
        sa.Column('game_type', sa.String(length=16), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('final_score', sa.Integer(), nullable=False),
        sa.Column('correct_answers', sa.Integer(), nullable=False),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('game_session') as batch_op:
        batch_op.create_index(batch_op.f('ix_game_session_session_id'), ['session_id'], unique=True)
        batch_op.create_index(batch_op.f('ix_game_session_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_game_session_status'), ['status'], unique=False)


def downgrade():
    op.drop_table('game_session')
    op.drop_table('game_score')
    op.drop_table('user')
