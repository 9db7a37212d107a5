"""SQLAlchemy models for the product catalog.

Defines the ten catalog tables. Soft-deletable tables carry ``deleted_at``;
uniqueness among live rows is enforced by partial unique indexes declared
for both PostgreSQL and SQLite.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_service.infrastructure.database import Base

# BIGSERIAL on PostgreSQL; SQLite only autoincrements INTEGER primary keys.
IdType = BigInteger().with_variant(Integer(), "sqlite")
Money = Numeric(12, 2, asdecimal=False)

LIVE = text("deleted_at IS NULL")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class SoftDeleteMixin:
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_live(self) -> bool:
        return self.deleted_at is None

    def soft_delete(self, at: datetime | None = None) -> None:
        self.deleted_at = at or utcnow()


# ============================================================================
# Categories & Attribute Definitions
# ============================================================================


class Category(TimestampMixin, SoftDeleteMixin, Base):
    """Node of the category tree.

    Attributes:
        id: Store-assigned identifier.
        name: Display name (3-100 chars).
        description: Optional description (up to 500 chars).
        parent_id: Parent category, None for roots.
        seller_id: Owning seller, None for global categories.
    """

    __tablename__ = "category"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    parent_id: Mapped[int | None] = mapped_column(
        IdType, ForeignKey("category.id"), nullable=True, index=True
    )
    seller_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name}, parent_id={self.parent_id})>"


class AttributeDefinition(TimestampMixin, Base):
    """Reusable attribute definition (e.g. ``screen_size``).

    Attributes:
        key: Immutable snake_case key, globally unique.
        name: Display name.
        data_type: Declared value type (string, number, boolean, array).
        unit: Optional unit of measure.
        allowed_values: Optional closed set of permitted values.
    """

    __tablename__ = "attribute_definition"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    data_type: Mapped[str] = mapped_column(String(20), nullable=False, default="string")
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    allowed_values: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AttributeDefinition(id={self.id}, key={self.key})>"


class CategoryAttribute(TimestampMixin, Base):
    """Link between a category and an attribute definition, with flags."""

    __tablename__ = "category_attribute"
    __table_args__ = (
        UniqueConstraint("category_id", "attribute_definition_id", name="uq_category_attribute"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("category.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attribute_definition_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("attribute_definition.id"), nullable=False, index=True
    )
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_searchable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_filterable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    default_value: Mapped[str | None] = mapped_column(String(255), nullable=True)

    attribute_definition: Mapped[AttributeDefinition] = relationship(lazy="selectin")


# ============================================================================
# Products
# ============================================================================


class Product(TimestampMixin, SoftDeleteMixin, Base):
    """Product owned by a seller. Price and images live on variants.

    Attributes:
        seller_id: Owning seller (required).
        category_id: Category visible to the owning seller.
        base_sku: Optional base SKU, unique per seller among live rows.
        tags: Up to 20 free-form tags.
    """

    __tablename__ = "product"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    seller_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    category_id: Mapped[int] = mapped_column(IdType, ForeignKey("category.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    base_sku: Mapped[str | None] = mapped_column(String(100), nullable=True)
    short_description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    long_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        Index("ix_product_seller_category", "seller_id", "category_id"),
        Index(
            "uq_product_seller_base_sku",
            "seller_id",
            "base_sku",
            unique=True,
            postgresql_where=LIVE,
            sqlite_where=LIVE,
        ),
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, seller_id={self.seller_id}, name={self.name[:30]})>"


class ProductOption(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "product_option"
    __table_args__ = (
        Index(
            "uq_product_option_name",
            "product_id",
            "name",
            unique=True,
            postgresql_where=LIVE,
            sqlite_where=LIVE,
        ),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("product.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ProductOptionValue(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "product_option_value"
    __table_args__ = (
        Index(
            "uq_product_option_value",
            "option_id",
            "value",
            unique=True,
            postgresql_where=LIVE,
            sqlite_where=LIVE,
        ),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    option_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("product_option.id"), nullable=False, index=True
    )
    value: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    color_code: Mapped[str | None] = mapped_column(String(7), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ProductVariant(TimestampMixin, SoftDeleteMixin, Base):
    """Purchasable variant: the unit of price and inventory.

    ``seller_id`` is copied from the product so SKU uniqueness per seller
    can be enforced by an index.
    """

    __tablename__ = "product_variant"
    __table_args__ = (
        Index("ix_product_variant_product_sku", "product_id", "sku"),
        Index(
            "uq_product_variant_seller_sku",
            "seller_id",
            "sku",
            unique=True,
            postgresql_where=LIVE,
            sqlite_where=LIVE,
        ),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("product.id"), nullable=False, index=True
    )
    seller_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[float] = mapped_column(Money, nullable=False)
    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    allow_purchase: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_popular: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<ProductVariant(id={self.id}, sku={self.sku}, product_id={self.product_id})>"


class VariantOptionValue(TimestampMixin, Base):
    """One ``(option -> value)`` entry of a variant's option signature."""

    __tablename__ = "variant_option_value"
    __table_args__ = (
        UniqueConstraint("variant_id", "option_id", name="uq_variant_option_value"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    variant_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("product_variant.id", ondelete="CASCADE"), nullable=False, index=True
    )
    option_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("product_option.id"), nullable=False, index=True
    )
    option_value_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("product_option_value.id"), nullable=False, index=True
    )


class ProductAttribute(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "product_attribute"
    __table_args__ = (
        Index(
            "uq_product_attribute",
            "product_id",
            "attribute_definition_id",
            unique=True,
            postgresql_where=LIVE,
            sqlite_where=LIVE,
        ),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("product.id"), nullable=False, index=True
    )
    attribute_definition_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("attribute_definition.id"), nullable=False, index=True
    )
    value: Mapped[str] = mapped_column(Text, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    attribute_definition: Mapped[AttributeDefinition] = relationship(lazy="selectin")


class PackageOption(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "package_option"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("product.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    price: Mapped[float] = mapped_column(Money, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


# Live-row uniqueness of (parent, name, seller); NULL parent/seller compare equal.
Index(
    "uq_category_parent_seller_name",
    func.coalesce(Category.parent_id, 0),
    func.coalesce(Category.seller_id, 0),
    Category.name,
    unique=True,
    postgresql_where=Category.deleted_at.is_(None),
    sqlite_where=Category.deleted_at.is_(None),
)
