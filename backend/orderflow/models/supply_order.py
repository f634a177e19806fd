"""ORDERFLOW — Supply Order models (Parts Supply Warehouse requests)."""
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderflow.db.base import Base, utcnow


class SupplyOrder(Base):
    """Raw-material request from a production workstation to the Parts Supply Warehouse."""

    __tablename__ = "supply_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    source_control_order_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    source_control_order_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    workstation_order_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    requesting_workstation_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    supply_workstation_id: Mapped[int] = mapped_column(Integer, nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="MEDIUM")
    requested_by_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="PENDING")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    fulfilled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    items: Mapped[list["SupplyOrderItem"]] = relationship(
        "SupplyOrderItem", back_populates="order", cascade="all, delete-orphan", lazy="selectin"
    )

    def append_note(self, note: str) -> None:
        self.notes = f"{self.notes}\n{note}" if self.notes else note


class SupplyOrderItem(Base):
    __tablename__ = "supply_order_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    supply_order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("supply_orders.id", ondelete="CASCADE"))
    part_id: Mapped[int] = mapped_column(Integer, nullable=False)
    part_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    quantity_requested: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_supplied: Mapped[int | None] = mapped_column(Integer, nullable=True)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="piece")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    order: Mapped["SupplyOrder"] = relationship("SupplyOrder", back_populates="items")
