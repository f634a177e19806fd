"""ORDERFLOW — Audit Recorder: append-only order event log."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.models.audit import AuditEvent

logger = logging.getLogger(__name__)

# ── Audit event constants ────────────────────────────────────────────────────
EVENT_CREATED = "CREATED"
EVENT_DELETED = "DELETED"
EVENT_FULFILLMENT_STARTED = "FULFILLMENT_STARTED"
EVENT_SCENARIO_SELECTED = "SCENARIO_SELECTED"
EVENT_SCENARIO_UPDATED = "SCENARIO_UPDATED"
EVENT_STOCK_DEBITED = "STOCK_DEBITED"
EVENT_STOCK_CREDITED = "STOCK_CREDITED"
EVENT_INVENTORY_UPDATE_FAILED = "INVENTORY_UPDATE_FAILED"
EVENT_WAREHOUSE_ORDER_CREATED = "WAREHOUSE_ORDER_CREATED"
EVENT_PRODUCTION_ORDER_CREATED = "PRODUCTION_ORDER_CREATED"
EVENT_FINAL_ASSEMBLY_CREATED = "FINAL_ASSEMBLY_ORDER_CREATED"
EVENT_SUPPLY_ORDER_CREATED = "SUPPLY_ORDER_CREATED"
EVENT_ASSEMBLY_COMPLETE = "ASSEMBLY_COMPLETE"
EVENT_COLLABORATOR_FAILURE = "COLLABORATOR_FAILURE"
EVENT_NOTES_UPDATED = "NOTES_UPDATED"
EVENT_WORKSTATION_ORDER_COMPLETED = "WORKSTATION_ORDER_COMPLETED"

MAX_RECENT = 500


class AuditService:
    """Write and query audit events. Entries are never updated or deleted."""

    @staticmethod
    def record(db: AsyncSession, source_type: str, order_id: UUID, event_type: str, message: str) -> None:
        """Stage an audit entry on the session; the caller's commit persists it."""
        try:
            db.add(
                AuditEvent(
                    source_type=source_type,
                    order_id=order_id,
                    event_type=event_type,
                    message=message[:4000],
                )
            )
        except Exception as exc:
            # Never allow audit failure to break the triggering transition
            logger.error("Audit write failed for %s %s: %s", source_type, order_id, exc, exc_info=True)

    @staticmethod
    async def find(db: AsyncSession, source_type: str, order_id: UUID) -> list[AuditEvent]:
        stmt = (
            select(AuditEvent)
            .where(AuditEvent.source_type == source_type, AuditEvent.order_id == order_id)
            .order_by(AuditEvent.created_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def find_recent(db: AsyncSession, limit: int = 50) -> list[AuditEvent]:
        limit = max(1, min(limit, MAX_RECENT))
        result = await db.execute(select(AuditEvent).order_by(AuditEvent.created_at.desc()).limit(limit))
        return list(result.scalars().all())
