"""ORDERFLOW — Side effects returned by transitions and run after commit."""
import uuid
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class RecordAudit:
    source_type: str
    order_id: uuid.UUID
    event_type: str
    message: str


@dataclass(frozen=True)
class NotifyWebhooks:
    order_type: str
    order_id: uuid.UUID
    event_type: str
    description: str

    @property
    def event_key(self) -> str:
        return f"{self.order_type}.{self.event_type}"


@dataclass(frozen=True)
class ReevaluateConfirmedOrders:
    """Stock moved at a workstation; refresh predicted scenarios of waiting orders."""

    workstation_id: int
    lot_size_threshold: int
    exclude_order_id: uuid.UUID | None = None


@dataclass(frozen=True)
class SyncScheduleTask:
    task_id: str
    status: str


Effect = Union[RecordAudit, NotifyWebhooks, ReevaluateConfirmedOrders, SyncScheduleTask]


def audit(source_type: str, order_id: uuid.UUID, event_type: str, message: str) -> RecordAudit:
    return RecordAudit(source_type=source_type, order_id=order_id, event_type=event_type, message=message)
