"""ORDERFLOW — Control orders and the workstation orders beneath them."""
import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderflow.db.base import Base, utcnow


class ControlOrder(Base):
    """Production (stations 1-3) or assembly (stations 4-5) task for one ProductionOrder."""

    __tablename__ = "control_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    control_order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    control_type: Mapped[str] = mapped_column(String(20), nullable=False)  # PRODUCTION, ASSEMBLY
    production_order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("production_orders.id", ondelete="CASCADE"), index=True
    )
    schedule_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="ASSIGNED")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="NORMAL")
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    target_completion_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_completion_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    workstation_orders: Mapped[list["WorkstationOrder"]] = relationship(
        "WorkstationOrder", back_populates="control_order", cascade="all, delete-orphan", lazy="selectin"
    )


class WorkstationOrder(Base):
    """Work at a single station; ``kind`` names one of the six station variants."""

    __tablename__ = "workstation_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    control_order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("control_orders.id", ondelete="CASCADE"))
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    workstation_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    output_item_type: Mapped[str] = mapped_column(String(20), nullable=False, default="MODULE")
    output_item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    output_item_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    # [{"item_id": int, "quantity": int}, ...]
    required_items: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="PENDING")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="NORMAL")
    supply_order_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    schedule_task_id: Mapped[str | None] = mapped_column(String(150), nullable=True)
    halt_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    operator_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    control_order: Mapped["ControlOrder"] = relationship("ControlOrder", back_populates="workstation_orders")
