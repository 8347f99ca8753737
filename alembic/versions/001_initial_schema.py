"""Initial migration - create users, inspirations and inspiration_tags tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, inspirations and inspiration_tags tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
        sa.UniqueConstraint('email', name=op.f('uq_users_email'))
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)

    op.create_table(
        'inspirations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('image_url', sa.String(length=1024), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name=op.f('fk_inspirations_user_id_users')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_inspirations'))
    )
    op.create_index(op.f('ix_inspirations_id'), 'inspirations', ['id'], unique=False)
    op.create_index(op.f('ix_inspirations_user_id'), 'inspirations', ['user_id'], unique=False)
    op.create_index(op.f('ix_inspirations_created_at'), 'inspirations', ['created_at'], unique=False)

    op.create_table(
        'inspiration_tags',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('inspiration_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(
            ['inspiration_id'], ['inspirations.id'],
            name=op.f('fk_inspiration_tags_inspiration_id_inspirations'),
            ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_inspiration_tags'))
    )
    op.create_index(op.f('ix_inspiration_tags_inspiration_id'), 'inspiration_tags', ['inspiration_id'], unique=False)
    op.create_index(op.f('ix_inspiration_tags_value'), 'inspiration_tags', ['value'], unique=False)


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index(op.f('ix_inspiration_tags_value'), table_name='inspiration_tags')
    op.drop_index(op.f('ix_inspiration_tags_inspiration_id'), table_name='inspiration_tags')
    op.drop_table('inspiration_tags')

    op.drop_index(op.f('ix_inspirations_created_at'), table_name='inspirations')
    op.drop_index(op.f('ix_inspirations_user_id'), table_name='inspirations')
    op.drop_index(op.f('ix_inspirations_id'), table_name='inspirations')
    op.drop_table('inspirations')

    op.drop_index(op.f('ix_users_id'), table_name='users')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
