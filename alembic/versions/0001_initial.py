"""create upload link table"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "upload_link",
        sa.Column("name", sa.String(length=200), nullable=False, primary_key=True),
        sa.Column("api_key", sa.String(length=255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_upload_link_expires_at", "upload_link", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_upload_link_expires_at", table_name="upload_link")
    op.drop_table("upload_link")
