"""Initial schema: tenants and owner API keys

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'tenants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('public_bot_id', sa.String(128), nullable=False),
        sa.Column('owner_id', sa.String(128), nullable=True),
        sa.Column('display_name', sa.String(200), nullable=False, server_default=''),
        # Persona fields, NULL or empty means "not provided"
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('skills', sa.Text(), nullable=True),
        sa.Column('expertise', sa.Text(), nullable=True),
        sa.Column('tone', sa.Text(), nullable=True),
        sa.Column('opinions', sa.Text(), nullable=True),
        sa.Column('linkedin', sa.Text(), nullable=True),
        sa.Column('github', sa.Text(), nullable=True),
        sa.Column('twitter', sa.Text(), nullable=True),
        sa.Column('resume_link', sa.Text(), nullable=True),
        sa.Column('persona_mode', sa.String(32), nullable=False, server_default='third_person'),
        sa.Column('llm_model', sa.String(100), nullable=True),
        sa.Column('gemini_api_key', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    # Point lookups by public id; uniqueness is enforced here, not in the gateway
    op.create_index('ix_tenants_public_bot_id', 'tenants', ['public_bot_id'], unique=True)

    op.create_table(
        'owner_api_keys',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('public_bot_id', sa.String(128), sa.ForeignKey('tenants.public_bot_id', ondelete='CASCADE'), nullable=False),
        sa.Column('key_prefix', sa.String(16), nullable=False),
        sa.Column('key_hash', sa.Text(), nullable=False),
        sa.Column('name', sa.String(200), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_owner_api_keys_key_prefix', 'owner_api_keys', ['key_prefix'])


def downgrade() -> None:
    op.drop_index('ix_owner_api_keys_key_prefix', table_name='owner_api_keys')
    op.drop_table('owner_api_keys')
    op.drop_index('ix_tenants_public_bot_id', table_name='tenants')
    op.drop_table('tenants')
