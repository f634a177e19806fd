"""ORDERFLOW — Customer Order models."""
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderflow.db.base import Base, utcnow


class CustomerOrder(Base):
    """Customer demand for finished products, raised at a workstation (usually the Plant Warehouse)."""

    __tablename__ = "customer_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    workstation_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="PENDING")
    trigger_scenario: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items: Mapped[list["CustomerOrderItem"]] = relationship(
        "CustomerOrderItem", back_populates="order", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)


class CustomerOrderItem(Base):
    """Line item for a CustomerOrder. fulfilled_quantity never exceeds quantity."""

    __tablename__ = "customer_order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_customer_order_items_quantity_positive"),
        CheckConstraint(
            "fulfilled_quantity >= 0 AND fulfilled_quantity <= quantity",
            name="ck_customer_order_items_fulfilled_bounds",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("customer_orders.id", ondelete="CASCADE"))
    item_type: Mapped[str] = mapped_column(String(20), nullable=False)
    item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    item_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    fulfilled_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    order: Mapped["CustomerOrder"] = relationship("CustomerOrder", back_populates="items")

    @property
    def remaining_quantity(self) -> int:
        return self.quantity - (self.fulfilled_quantity or 0)

    def record_fulfilled(self, quantity: int) -> None:
        if quantity < 0 or (self.fulfilled_quantity or 0) + quantity > self.quantity:
            raise ValueError(
                f"Cannot fulfil {quantity} of item {self.item_id}: {self.fulfilled_quantity}/{self.quantity} already fulfilled"
            )
        self.fulfilled_quantity = (self.fulfilled_quantity or 0) + quantity
