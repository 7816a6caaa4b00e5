"""create_recipe_app_tables

Revision ID: 3f1c9a2b7d40
Revises:
Create Date: 2026-10-18 10:12:31.504218

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c9a2b7d40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'profiles',
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('preferences', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(32), nullable=False, server_default='active'),
        sa.Column('status_changed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('user_id'),
    )

    op.create_table(
        'user_api_keys',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('provider', sa.String(50), nullable=False, server_default='openai'),
        sa.Column('encrypted_api_key', sa.Text(), nullable=False),
        sa.Column('key_last4', sa.String(4), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_validated', sa.DateTime(), nullable=True),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', name='uq_user_api_keys_user'),
    )
    op.create_index('ix_user_api_keys_user_id', 'user_api_keys', ['user_id'])

    op.create_table(
        'recipes',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.JSON(), nullable=False),
        sa.Column('query', sa.Text(), nullable=False),
        sa.Column('preferences', sa.JSON(), nullable=False),
        sa.Column('is_visible', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_recipes_user_created', 'recipes', ['user_id', 'created_at'])

    op.create_table(
        'recipe_ratings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recipe_id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('rating', sa.SmallInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('recipe_id', 'user_id', name='uq_recipe_rating_user'),
        sa.CheckConstraint('rating IN (-1, 1)', name='ck_recipe_rating_value'),
    )

    op.create_table(
        'ai_usage',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('recipe_id', sa.String(36), nullable=True),
        sa.Column('model', sa.String(50), nullable=False),
        sa.Column('input_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('output_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cost', sa.Float(), nullable=False, server_default='0'),
        sa.Column('used_own_key', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id'], ondelete='SET NULL'),
    )
    op.create_index('idx_ai_usage_user_created', 'ai_usage', ['user_id', 'created_at'])


def downgrade():
    op.drop_index('idx_ai_usage_user_created', table_name='ai_usage')
    op.drop_table('ai_usage')
    op.drop_table('recipe_ratings')
    op.drop_index('idx_recipes_user_created', table_name='recipes')
    op.drop_table('recipes')
    op.drop_index('ix_user_api_keys_user_id', table_name='user_api_keys')
    op.drop_table('user_api_keys')
    op.drop_table('profiles')
