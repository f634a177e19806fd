"""ORDERFLOW — Warehouse Order models (Modules Supermarket requests)."""
import uuid
from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderflow.db.base import Base, utcnow
from orderflow.domain.parents import CustomerOrderParent, OrderParent, parent_from_columns
from orderflow.domain.workstations import ItemType


class WarehouseOrder(Base):
    """Aggregated module demand raised against the Modules Supermarket."""

    __tablename__ = "warehouse_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    parent_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    workstation_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="PENDING")
    trigger_scenario: Mapped[str | None] = mapped_column(String(50), nullable=True)
    production_order_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items: Mapped[list["WarehouseOrderItem"]] = relationship(
        "WarehouseOrderItem", back_populates="order", cascade="all, delete-orphan", lazy="selectin"
    )
    products: Mapped[list["WarehouseOrderProduct"]] = relationship(
        "WarehouseOrderProduct", back_populates="order", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def parent(self) -> OrderParent:
        return parent_from_columns(self.parent_type, self.parent_id)

    @property
    def source_customer_order_id(self) -> uuid.UUID | None:
        parent = self.parent
        return parent.customer_order_id if isinstance(parent, CustomerOrderParent) else None

    @property
    def fully_fulfilled(self) -> bool:
        return bool(self.items) and all(item.remaining_quantity == 0 for item in self.items)

    def modules_ready_for(self, product: "WarehouseOrderProduct") -> bool:
        """Every module line the product is built from has been fulfilled."""
        lines = [
            item for item in self.items
            if item.item_type == ItemType.MODULE.value and item.item_id in (product.module_ids or [])
        ]
        return bool(lines) and all(item.remaining_quantity == 0 for item in lines)


class WarehouseOrderItem(Base):
    """One aggregated component line; a component id appears at most once per order."""

    __tablename__ = "warehouse_order_items"
    __table_args__ = (
        UniqueConstraint("warehouse_order_id", "item_type", "item_id", name="uq_warehouse_order_items_component"),
        CheckConstraint(
            "fulfilled_quantity >= 0 AND fulfilled_quantity <= requested_quantity",
            name="ck_warehouse_order_items_fulfilled_bounds",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    warehouse_order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("warehouse_orders.id", ondelete="CASCADE"))
    item_type: Mapped[str] = mapped_column(String(20), nullable=False, default="MODULE")
    item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    item_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    requested_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    fulfilled_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    order: Mapped["WarehouseOrder"] = relationship("WarehouseOrder", back_populates="items")

    @property
    def remaining_quantity(self) -> int:
        return self.requested_quantity - (self.fulfilled_quantity or 0)


class WarehouseOrderProduct(Base):
    """Product units behind the module lines; released to final assembly once its modules are in."""

    __tablename__ = "warehouse_order_products"
    __table_args__ = (
        UniqueConstraint("warehouse_order_id", "product_id", name="uq_warehouse_order_products_product"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    warehouse_order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("warehouse_orders.id", ondelete="CASCADE"))
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    module_ids: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    final_assembly_order_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    order: Mapped["WarehouseOrder"] = relationship("WarehouseOrder", back_populates="products")
