"""create post and vote tables

Revision ID: 5c2e9a71b0d4
Revises: 
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9a71b0d4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa.inspect(bind).get_table_names())

    if 'post' not in existing_tables:
        op.create_table(
            'post',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('image_url', sa.String(length=512), nullable=True),
            sa.Column('bio', sa.Text(), nullable=True),
            sa.Column('smashes', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('passes', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('total_votes', sa.Integer(), nullable=False, server_default='0'),
        )

    if 'vote' not in existing_tables:
        op.create_table(
            'vote',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('post_id', sa.Integer(), sa.ForeignKey('post.id'), nullable=False),
            sa.Column('voter_id', sa.String(length=64), nullable=False),
            sa.Column('decision', sa.Integer(), nullable=False),
            sa.UniqueConstraint('post_id', 'voter_id', name='uq_vote_post_voter'),
        )
        op.create_index('ix_vote_post_id', 'vote', ['post_id'])


def downgrade():
    op.drop_index('ix_vote_post_id', table_name='vote')
    op.drop_table('vote')
    op.drop_table('post')
