"""SQLAlchemy database models for Resale Arbitrage Catalog."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class ListingDB(Base):
    """Scraped or user-copied catalog listing."""

    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    shop_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    shop_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    sale_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_hidden: Mapped[bool] = mapped_column(Boolean, default=False)
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Plain column: copies of a removed original are deleted by the engine
    original_listing_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    reference_link: Mapped[ListingReferenceLinkDB | None] = relationship(
        "ListingReferenceLinkDB",
        back_populates="listing",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    __table_args__ = (Index("ix_listings_shop", "shop_type", "shop_name"),)


class MarketplaceReferenceDB(Base):
    """Amazon marketplace reference record."""

    __tablename__ = "marketplace_references"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    asin: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    amazon_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    amazon_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    monthly_sales: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fee_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    fba_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    jan_code: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    product_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    has_amazon: Mapped[bool] = mapped_column(Boolean, default=False)
    has_official: Mapped[bool] = mapped_column(Boolean, default=False)
    complaint_count: Mapped[int] = mapped_column(Integer, default=0)
    is_dangerous: Mapped[bool] = mapped_column(Boolean, default=False)
    is_per_carry_ng: Mapped[bool] = mapped_column(Boolean, default=False)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    links: Mapped[list[ListingReferenceLinkDB]] = relationship(
        "ListingReferenceLinkDB", back_populates="reference"
    )


class ListingReferenceLinkDB(Base):
    """Join of a listing to its marketplace reference."""

    __tablename__ = "listing_reference_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    listing_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    reference_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("marketplace_references.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    # Relationships
    listing: Mapped[ListingDB] = relationship("ListingDB", back_populates="reference_link")
    reference: Mapped[MarketplaceReferenceDB] = relationship(
        "MarketplaceReferenceDB", back_populates="links"
    )


class ShopDiscountDB(Base):
    """Per-shop discount rule."""

    __tablename__ = "shop_discounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shop_name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False)  # percentage, fixed
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)
