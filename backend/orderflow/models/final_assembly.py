"""ORDERFLOW — Final Assembly Order model."""
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from orderflow.db.base import Base, utcnow
from orderflow.domain.parents import OrderParent, parent_from_columns


class FinalAssemblyOrder(Base):
    """Assembly of finished products at WS-6; parented by a WarehouseOrder xor a ProductionOrder."""

    __tablename__ = "final_assembly_orders"
    __table_args__ = (
        CheckConstraint(
            "parent_type IN ('WAREHOUSE_ORDER', 'PRODUCTION_ORDER')",
            name="ck_final_assembly_orders_parent_type",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    parent_type: Mapped[str] = mapped_column(String(30), nullable=False)
    parent_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    workstation_id: Mapped[int] = mapped_column(Integer, nullable=False)
    output_product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    output_product_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    output_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="PENDING")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completion_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    submit_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def parent(self) -> OrderParent:
        return parent_from_columns(self.parent_type, self.parent_id)
