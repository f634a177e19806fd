"""ORDERFLOW — Append-only audit event."""
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from orderflow.db.base import Base, utcnow


class AuditEvent(Base):
    """Immutable (source_type, order_id, event_type, message, timestamp) record."""

    __tablename__ = "audit_events"
    __table_args__ = (Index("ix_audit_events_source_order", "source_type", "order_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    source_type: Mapped[str] = mapped_column(String(50), nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
