"""Add workflow_artifacts table

Revision ID: 001_workflow_artifacts
Revises:
Create Date: 2026-10-19

One row per (workspace_id, artifact_key) holding a stage artifact as JSON.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_workflow_artifacts'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'workflow_artifacts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('workspace_id', sa.String(length=255), nullable=False),
        sa.Column('artifact_key', sa.String(length=50), nullable=False),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('workspace_id', 'artifact_key', name='uq_workflow_artifact_key'),
    )
    op.create_index('ix_workflow_artifacts_id', 'workflow_artifacts', ['id'])
    op.create_index('ix_workflow_artifacts_workspace_id', 'workflow_artifacts', ['workspace_id'])


def downgrade() -> None:
    op.drop_index('ix_workflow_artifacts_workspace_id', table_name='workflow_artifacts')
    op.drop_index('ix_workflow_artifacts_id', table_name='workflow_artifacts')
    op.drop_table('workflow_artifacts')
