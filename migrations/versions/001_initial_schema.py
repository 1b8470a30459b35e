"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Listings table
    op.create_table(
        "listings",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("shop_type", sa.String(20), nullable=False),
        sa.Column("shop_name", sa.String(200), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("sale_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("is_hidden", sa.Boolean(), default=False),
        sa.Column("is_favorite", sa.Boolean(), default=False),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column("original_listing_id", sa.String(36), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_listings_shop_type", "listings", ["shop_type"])
    op.create_index("ix_listings_shop_name", "listings", ["shop_name"])
    op.create_index("ix_listings_is_favorite", "listings", ["is_favorite"])
    op.create_index("ix_listings_original_listing_id", "listings", ["original_listing_id"])
    op.create_index("ix_listings_created_at", "listings", ["created_at"])
    op.create_index("ix_listings_shop", "listings", ["shop_type", "shop_name"])

    # Marketplace references table
    op.create_table(
        "marketplace_references",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("asin", sa.String(10), nullable=False),
        sa.Column("amazon_name", sa.Text(), nullable=True),
        sa.Column("amazon_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("monthly_sales", sa.Integer(), nullable=True),
        sa.Column("fee_rate", sa.Numeric(5, 2), nullable=True),
        sa.Column("fba_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("jan_code", sa.String(20), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("product_url", sa.Text(), nullable=True),
        sa.Column("has_amazon", sa.Boolean(), default=False),
        sa.Column("has_official", sa.Boolean(), default=False),
        sa.Column("complaint_count", sa.Integer(), default=0),
        sa.Column("is_dangerous", sa.Boolean(), default=False),
        sa.Column("is_per_carry_ng", sa.Boolean(), default=False),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("asin"),
    )
    op.create_index("ix_marketplace_references_jan_code", "marketplace_references", ["jan_code"])

    # Listing -> reference links
    op.create_table(
        "listing_reference_links",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("listing_id", sa.String(36), nullable=False),
        sa.Column("reference_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("listing_id"),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["reference_id"], ["marketplace_references.id"], ondelete="CASCADE"
        ),
    )
    op.create_index(
        "ix_listing_reference_links_reference_id", "listing_reference_links", ["reference_id"]
    )

    # Shop discounts table
    op.create_table(
        "shop_discounts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("shop_name", sa.String(200), nullable=False),
        sa.Column("discount_type", sa.String(20), nullable=False),
        sa.Column("discount_value", sa.Numeric(12, 2), default=0),
        sa.Column("is_enabled", sa.Boolean(), default=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("shop_name"),
    )


def downgrade() -> None:
    op.drop_table("shop_discounts")
    op.drop_index("ix_listing_reference_links_reference_id", table_name="listing_reference_links")
    op.drop_table("listing_reference_links")
    op.drop_index("ix_marketplace_references_jan_code", table_name="marketplace_references")
    op.drop_table("marketplace_references")
    op.drop_index("ix_listings_shop", table_name="listings")
    op.drop_index("ix_listings_created_at", table_name="listings")
    op.drop_index("ix_listings_original_listing_id", table_name="listings")
    op.drop_index("ix_listings_is_favorite", table_name="listings")
    op.drop_index("ix_listings_shop_name", table_name="listings")
    op.drop_index("ix_listings_shop_type", table_name="listings")
    op.drop_table("listings")
