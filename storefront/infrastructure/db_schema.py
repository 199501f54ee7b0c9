from sqlalchemy import (
    Table, Column, String, Integer, Boolean, Numeric, Text, DateTime, JSON, MetaData,
    ForeignKey, CheckConstraint, UniqueConstraint,
)

metadata = MetaData()


users_tbl = Table(
    "users",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("email", String, nullable=False, unique=True),
    Column("api_token", String, nullable=False, unique=True, index=True),
    Column("is_admin", Boolean, nullable=False, default=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


products_tbl = Table(
    "products",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String(100), nullable=False),
    Column("description", String(1000), nullable=False, default=""),
    Column("price", Numeric(12, 2), nullable=False),
    Column("category", String, nullable=False, index=True),
    Column("stock", Integer, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
)


carts_tbl = Table(
    "carts",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, ForeignKey("users.id"), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("user_id", name="uq_carts_user_id"),
)


cart_items_tbl = Table(
    "cart_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("cart_id", String, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False),
    Column("product_id", String, ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
    Column("quantity", Integer, nullable=False),
    CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
    UniqueConstraint("cart_id", "product_id", name="uq_cart_items_cart_product"),
)


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("order_number", String, nullable=False),
    Column("user_id", String, ForeignKey("users.id"), nullable=False, index=True),
    Column("total_price", Numeric(12, 2), nullable=False),
    Column("shipping_address", JSON, nullable=False),
    Column("payment_method", String, nullable=False, default="cod"),
    Column("notes", Text, nullable=True),
    Column("current_status", String, nullable=False, default="Pending", index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("order_number", name="uq_orders_order_number"),
)


# Product reference is kept without a foreign key so the snapshot outlives product deletion
order_items_tbl = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("product_id", String, nullable=False),
    Column("name", String, nullable=False),
    Column("price", Numeric(12, 2), nullable=False),
    Column("quantity", Integer, nullable=False),
)


order_status_history_tbl = Table(
    "order_status_history",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("status", String, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


store_settings_tbl = Table(
    "store_settings",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("store_name", String, nullable=False),
    Column("support_email", String, nullable=False),
    Column("delivery_fee", Numeric(12, 2), nullable=False),
    Column("tax_rate", Numeric(5, 2), nullable=False),
    Column("currency", String(3), nullable=False),
    Column("currency_symbol", String(5), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)
