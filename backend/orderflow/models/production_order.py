"""ORDERFLOW — Production Order models."""
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderflow.db.base import Base, utcnow
from orderflow.domain.parents import OrderParent, parent_from_columns


class ProductionOrder(Base):
    """Module production request, parented by a CustomerOrder (Scenario 4) or a WarehouseOrder."""

    __tablename__ = "production_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    parent_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    source_customer_order_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="CREATED")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="NORMAL")
    trigger_scenario: Mapped[str | None] = mapped_column(String(50), nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Schedule linkage
    schedule_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    estimated_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    expected_completion_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_completion_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by_workstation_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items: Mapped[list["ProductionOrderItem"]] = relationship(
        "ProductionOrderItem", back_populates="order", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def parent(self) -> OrderParent:
        return parent_from_columns(self.parent_type, self.parent_id)


class ProductionOrderItem(Base):
    """Module to produce, with the workstation tier it is dispatched to."""

    __tablename__ = "production_order_items"
    __table_args__ = (
        UniqueConstraint("production_order_id", "item_type", "item_id", name="uq_production_order_items_component"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    production_order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("production_orders.id", ondelete="CASCADE"))
    item_type: Mapped[str] = mapped_column(String(20), nullable=False, default="MODULE")
    item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    item_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    estimated_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    workstation_type: Mapped[str] = mapped_column(String(20), nullable=False)  # MANUFACTURING, ASSEMBLY
    target_workstation_id: Mapped[int] = mapped_column(Integer, nullable=False)

    order: Mapped["ProductionOrder"] = relationship("ProductionOrder", back_populates="items")
