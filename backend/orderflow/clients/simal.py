"""ORDERFLOW — Production Scheduler Adapter for the SimAL integration service."""
import logging
from datetime import datetime
from typing import Any

from orderflow.clients.base import ServiceClient
from orderflow.core.errors import CollaboratorFailure
from orderflow.domain.ports import ScheduleReceipt

logger = logging.getLogger(__name__)


class SimalClient(ServiceClient):
    """Submits production orders for scheduling and tracks scheduled tasks."""

    name = "scheduler"

    async def submit(self, production_order: Any) -> ScheduleReceipt:
        payload = {
            "orderNumber": production_order.order_number,
            "priority": production_order.priority,
            "dueDate": production_order.due_date.isoformat() if production_order.due_date else None,
            "lineItems": [
                {
                    "itemId": item.item_id,
                    "itemName": item.item_name,
                    "quantity": item.quantity,
                    "workstationId": item.target_workstation_id,
                    "estimatedTimeMinutes": item.estimated_time_minutes,
                }
                for item in production_order.items
            ],
        }
        response = await self._request("POST", "/api/simal/schedules", "submit", json=payload)
        body = response.json()
        if not body.get("scheduleId"):
            raise CollaboratorFailure(self.name, "submit", "response carried no scheduleId")
        expected = body.get("expectedCompletionTime")
        return ScheduleReceipt(
            schedule_id=str(body["scheduleId"]),
            estimated_duration_minutes=body.get("estimatedDurationMinutes"),
            expected_completion_time=datetime.fromisoformat(expected) if expected else None,
        )

    async def update_task_status(self, task_id: str, status: str) -> bool:
        await self._request("PATCH", f"/api/simal/tasks/{task_id}/status", "update_task_status", json={"status": status})
        return True

    async def get_scheduled_tasks(self, schedule_id: str) -> list[dict[str, Any]]:
        body = await self._get_json(f"/api/simal/schedules/{schedule_id}/tasks", "get_scheduled_tasks")
        return list(body or [])
