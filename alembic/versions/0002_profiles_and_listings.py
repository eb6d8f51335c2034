from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0002_profiles_and_listings"
down_revision = "0001_accounts_and_tokens"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, server_default=""),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("phone_number", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "listings",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("author_id", sa.String(), nullable=False),

        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("category", sa.String(length=40), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=False, server_default=""),

        sa.Column("tags", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("image_urls", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("image_hint", sa.String(length=200), nullable=False, server_default=""),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_index("ix_listings_author_id", "listings", ["author_id"])
    op.create_index("ix_listings_created_at", "listings", ["created_at"])


def downgrade():
    op.drop_index("ix_listings_created_at", table_name="listings")
    op.drop_index("ix_listings_author_id", table_name="listings")
    op.drop_table("listings")
    op.drop_table("user_profiles")
