"""ORDERFLOW — Order statuses and their transition tables."""
from enum import Enum

from orderflow.domain.machine import StateMachine

# ── Audit source types ───────────────────────────────────────────────────────
SOURCE_CUSTOMER = "CUSTOMER"
SOURCE_WAREHOUSE = "WAREHOUSE"
SOURCE_PRODUCTION = "PRODUCTION"
SOURCE_CONTROL = "CONTROL"
SOURCE_WORKSTATION = "WORKSTATION"
SOURCE_SUPPLY = "SUPPLY"
SOURCE_FINAL_ASSEMBLY = "FINAL_ASSEMBLY"


class CustomerOrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class CustomerTriggerScenario(str, Enum):
    DIRECT_FULFILLMENT = "DIRECT_FULFILLMENT"
    WAREHOUSE_ORDER_NEEDED = "WAREHOUSE_ORDER_NEEDED"
    DIRECT_PRODUCTION = "DIRECT_PRODUCTION"


class WarehouseOrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    PENDING_PRODUCTION = "PENDING_PRODUCTION"
    MODULES_READY = "MODULES_READY"
    FULFILLED = "FULFILLED"
    CANCELLED = "CANCELLED"


class WarehouseTriggerScenario(str, Enum):
    DIRECT_FULFILLMENT = "DIRECT_FULFILLMENT"
    PRODUCTION_REQUIRED = "PRODUCTION_REQUIRED"


class ProductionOrderStatus(str, Enum):
    CREATED = "CREATED"
    CONFIRMED = "CONFIRMED"
    SCHEDULED = "SCHEDULED"
    DISPATCHED = "DISPATCHED"
    IN_PRODUCTION = "IN_PRODUCTION"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ControlOrderType(str, Enum):
    PRODUCTION = "PRODUCTION"
    ASSEMBLY = "ASSEMBLY"


class ControlOrderStatus(str, Enum):
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class WorkstationOrderStatus(str, Enum):
    PENDING = "PENDING"
    WAITING_FOR_PARTS = "WAITING_FOR_PARTS"
    IN_PROGRESS = "IN_PROGRESS"
    HALTED = "HALTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SupplyOrderStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    FULFILLED = "FULFILLED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class FinalAssemblyStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SUBMITTED = "SUBMITTED"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


_C = CustomerOrderStatus
CUSTOMER_ORDER_MACHINE = StateMachine(
    "CustomerOrder",
    CustomerOrderStatus,
    {
        "confirm": {_C.PENDING: _C.CONFIRMED},
        "mark_processing": {_C.PENDING: _C.PROCESSING, _C.CONFIRMED: _C.PROCESSING},
        "fulfill": {_C.CONFIRMED: _C.COMPLETED},
        "complete": {_C.PROCESSING: _C.COMPLETED},
        "assembly_ready": {_C.PROCESSING: _C.CONFIRMED},
        "cancel": {_C.PENDING: _C.CANCELLED, _C.CONFIRMED: _C.CANCELLED, _C.PROCESSING: _C.CANCELLED},
    },
    audit_source=SOURCE_CUSTOMER,
    webhook_states=(_C.COMPLETED, _C.CANCELLED),
)

_W = WarehouseOrderStatus
_W_OPEN = (_W.PENDING, _W.CONFIRMED, _W.PROCESSING, _W.PENDING_PRODUCTION, _W.MODULES_READY)
WAREHOUSE_ORDER_MACHINE = StateMachine(
    "WarehouseOrder",
    WarehouseOrderStatus,
    {
        "confirm": {_W.PENDING: _W.CONFIRMED},
        "fulfill_all": {_W.CONFIRMED: _W.FULFILLED, _W.MODULES_READY: _W.FULFILLED},
        "fulfill_partial": {_W.CONFIRMED: _W.PROCESSING, _W.MODULES_READY: _W.PROCESSING},
        "await_production": {_W.CONFIRMED: _W.PENDING_PRODUCTION, _W.MODULES_READY: _W.PENDING_PRODUCTION},
        "modules_ready": {_W.PROCESSING: _W.MODULES_READY, _W.PENDING_PRODUCTION: _W.MODULES_READY},
        "cancel": {s: _W.CANCELLED for s in _W_OPEN},
    },
    audit_source=SOURCE_WAREHOUSE,
)

_P = ProductionOrderStatus
PRODUCTION_ORDER_MACHINE = StateMachine(
    "ProductionOrder",
    ProductionOrderStatus,
    {
        "confirm": {_P.CREATED: _P.CONFIRMED},
        "schedule": {_P.CONFIRMED: _P.SCHEDULED},
        "dispatch": {_P.SCHEDULED: _P.DISPATCHED},
        "start": {_P.DISPATCHED: _P.IN_PRODUCTION},
        "complete": {_P.IN_PRODUCTION: _P.COMPLETED},
        "cancel": {s: _P.CANCELLED for s in (_P.CREATED, _P.CONFIRMED, _P.SCHEDULED, _P.DISPATCHED, _P.IN_PRODUCTION)},
    },
    audit_source=SOURCE_PRODUCTION,
)

_K = ControlOrderStatus
CONTROL_ORDER_MACHINE = StateMachine(
    "ControlOrder",
    ControlOrderStatus,
    {
        "start": {_K.ASSIGNED: _K.IN_PROGRESS},
        "complete": {_K.IN_PROGRESS: _K.COMPLETED},
        "cancel": {_K.ASSIGNED: _K.CANCELLED, _K.IN_PROGRESS: _K.CANCELLED},
    },
    audit_source=SOURCE_CONTROL,
)

_S = WorkstationOrderStatus
WORKSTATION_ORDER_MACHINE = StateMachine(
    "WorkstationOrder",
    WorkstationOrderStatus,
    {
        "start": {_S.PENDING: _S.IN_PROGRESS, _S.WAITING_FOR_PARTS: _S.IN_PROGRESS},
        "complete": {_S.IN_PROGRESS: _S.COMPLETED},
        "halt": {_S.IN_PROGRESS: _S.HALTED},
        "resume": {_S.HALTED: _S.IN_PROGRESS},
        "wait_for_parts": {_S.PENDING: _S.WAITING_FOR_PARTS, _S.IN_PROGRESS: _S.WAITING_FOR_PARTS},
        "cancel": {s: _S.CANCELLED for s in (_S.PENDING, _S.WAITING_FOR_PARTS, _S.IN_PROGRESS, _S.HALTED)},
    },
    audit_source=SOURCE_WORKSTATION,
)

_U = SupplyOrderStatus
SUPPLY_ORDER_MACHINE = StateMachine(
    "SupplyOrder",
    SupplyOrderStatus,
    {
        "start": {_U.PENDING: _U.IN_PROGRESS},
        "fulfill": {_U.PENDING: _U.FULFILLED, _U.IN_PROGRESS: _U.FULFILLED},
        "reject": {_U.PENDING: _U.REJECTED, _U.IN_PROGRESS: _U.REJECTED},
        "cancel": {_U.PENDING: _U.CANCELLED, _U.IN_PROGRESS: _U.CANCELLED},
    },
    audit_source=SOURCE_SUPPLY,
)

_F = FinalAssemblyStatus
FINAL_ASSEMBLY_MACHINE = StateMachine(
    "FinalAssemblyOrder",
    FinalAssemblyStatus,
    {
        "confirm": {_F.PENDING: _F.CONFIRMED},
        "start": {_F.CONFIRMED: _F.IN_PROGRESS},
        "complete": {_F.IN_PROGRESS: _F.COMPLETED},
        "submit": {_F.COMPLETED: _F.SUBMITTED},
    },
    audit_source=SOURCE_FINAL_ASSEMBLY,
)
