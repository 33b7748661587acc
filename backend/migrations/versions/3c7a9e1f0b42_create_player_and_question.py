"""create player and question tables

Revision ID: 3c7a9e1f0b42
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c7a9e1f0b42'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa.inspect(bind).get_table_names())

    if 'player' not in existing_tables:
        op.create_table(
            'player',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=128), nullable=False, server_default=''),
            sa.Column('total_score', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('correct_answers', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('incorrect_answers', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_questions_answered', sa.Integer(), nullable=False, server_default='0'),
        )
        op.create_index('ix_player_name', 'player', ['name'], unique=True)

    if 'question' not in existing_tables:
        op.create_table(
            'question',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('position', sa.Integer(), nullable=False),
            sa.Column('prompt', sa.Text(), nullable=False),
            sa.Column('expected_answer', sa.Text(), nullable=False, server_default=''),
        )
        op.create_index('ix_question_position', 'question', ['position'])


def downgrade():
    op.drop_index('ix_question_position', table_name='question')
    op.drop_table('question')
    op.drop_index('ix_player_name', table_name='player')
    op.drop_table('player')
