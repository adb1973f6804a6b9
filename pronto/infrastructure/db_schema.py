from sqlalchemy import Table, Column, String, Integer, Boolean, DateTime, JSON, MetaData

metadata = MetaData()


# Заказ хранится целиком в document, отдельные колонки для фильтров и CAS
orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("client_id", String, nullable=False, index=True),
    Column("business_id", String, nullable=False, index=True),
    Column("delivery_person_id", String, nullable=True, index=True),
    Column("status", String, nullable=False, index=True),
    Column("version", Integer, nullable=False, default=0),
    Column("document", JSON, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


users_tbl = Table(
    "users",
    metadata,
    Column("id", String, primary_key=True),
    Column("email", String, unique=True, index=True, nullable=False),
    Column("role", String, nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("document", JSON, nullable=False),
)
