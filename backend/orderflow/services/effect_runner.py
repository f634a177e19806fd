"""ORDERFLOW — Runs transition side effects after the owning transaction commits.

Effects never roll back the operation that produced them: each one is
committed on its own, and a failing effect is logged and skipped.
"""
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.errors import OrderflowError
from orderflow.domain.effects import (
    Effect,
    NotifyWebhooks,
    RecordAudit,
    ReevaluateConfirmedOrders,
    SyncScheduleTask,
)
from orderflow.domain.ports import Gateways
from orderflow.services.audit_service import AuditService
from orderflow.services.customer_order_service import CustomerOrderService
from orderflow.services.webhook_service import WebhookService, enqueue_delivery

logger = logging.getLogger(__name__)


class EffectRunner:

    def __init__(
        self,
        db: AsyncSession,
        gateways: Gateways,
        enqueue: Callable[[UUID], None] = enqueue_delivery,
    ):
        self.db = db
        self.gateways = gateways
        self.enqueue = enqueue

    async def run(self, effects: Iterable[Effect]) -> None:
        queue = deque(effects)
        while queue:
            effect = queue.popleft()
            try:
                queue.extend(await self._run_one(effect))
            except Exception as exc:
                logger.error("Side effect %s failed: %s", type(effect).__name__, exc, exc_info=True)
                await self.db.rollback()

    async def _run_one(self, effect: Effect) -> list[Effect]:
        if isinstance(effect, RecordAudit):
            if effect.order_id is None:
                return []
            AuditService.record(self.db, effect.source_type, effect.order_id, effect.event_type, effect.message)
            await self.db.commit()
        elif isinstance(effect, NotifyWebhooks):
            delivery_ids = await WebhookService.dispatch(self.db, effect)
            await self.db.commit()
            for delivery_id in delivery_ids:
                self.enqueue(delivery_id)
        elif isinstance(effect, ReevaluateConfirmedOrders):
            follow_up = await CustomerOrderService.reevaluate_confirmed_orders(
                self.db,
                self.gateways.inventory,
                effect.workstation_id,
                effect.lot_size_threshold,
                exclude_order_id=effect.exclude_order_id,
            )
            await self.db.commit()
            return follow_up
        elif isinstance(effect, SyncScheduleTask):
            if not await self.gateways.scheduler.update_task_status(effect.task_id, effect.status):
                logger.warning("Scheduler rejected status %s for task %s", effect.status, effect.task_id)
        return []

    async def execute(
        self,
        work: Awaitable[tuple[Any, list[Effect]]],
        serializer: Callable[[Any], Any] | None = None,
    ) -> Any:
        """
        Await a service call returning ``(result, effects)``, commit it, and
        run the effects. The result is serialized before any effect runs.
        A business error rolls back the work but still runs the effects it
        carries (collaborator-failure audits and the like) before re-raising.
        """
        try:
            result, effects = await work
            await self.db.commit()
        except OrderflowError as exc:
            await self.db.rollback()
            await self.run(exc.effects)
            raise
        payload = serializer(result) if serializer is not None else result
        await self.run(effects)
        return payload
