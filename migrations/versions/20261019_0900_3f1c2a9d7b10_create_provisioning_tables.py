"""create_provisioning_tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c2a9d7b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'templates',
        sa.Column('name', sa.String(255), primary_key=True),
        sa.Column('source', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # 1:1 with templates
    op.create_table(
        'template_configurations',
        sa.Column(
            'template_name',
            sa.String(255),
            sa.ForeignKey('templates.name', ondelete='CASCADE'),
            primary_key=True,
        ),
        sa.Column('id_field', sa.String(255), nullable=False, server_default=''),
        sa.Column('dynamic_fields', sa.JSON(), nullable=False),
        sa.Column('hashing_algorithm', sa.String(20), nullable=False, server_default='none'),
        sa.Column('default_values', sa.JSON(), nullable=False),
    )

    # Written once per (template, identity value), never updated
    op.create_table(
        'rendered_instances',
        sa.Column(
            'template_name',
            sa.String(255),
            sa.ForeignKey('templates.name', ondelete='CASCADE'),
            primary_key=True,
        ),
        sa.Column('identity_value', sa.String(512), primary_key=True),
        sa.Column('generated_fields', sa.JSON(), nullable=False),
        sa.Column('rendered_output', sa.LargeBinary(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        'idx_rendered_instances_created_at',
        'rendered_instances',
        ['template_name', 'created_at'],
    )


def downgrade() -> None:
    op.drop_index('idx_rendered_instances_created_at', table_name='rendered_instances')
    op.drop_table('rendered_instances')
    op.drop_table('template_configurations')
    op.drop_table('templates')
