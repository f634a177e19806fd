"""Shared fixtures: in-memory database and fake collaborators."""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import orderflow.models  # noqa: F401  (registers every table on Base.metadata)
from orderflow.core.errors import CollaboratorFailure
from orderflow.db.base import Base
from orderflow.domain.bom import scale_bom
from orderflow.domain.ports import Gateways, ScheduleReceipt, StockAdjustment
from orderflow.domain.workstations import item_type_for_workstation
from orderflow.services.customer_order_service import CustomerOrderService
from orderflow.services.effect_runner import EffectRunner

# Product 1 = one module 10 + two module 11; product 2 = two module 10.
PRODUCT_BOM = {1: {10: 1, 11: 2}, 2: {10: 2}}
MODULE_BOM = {10: {100: 2, 101: 1}, 11: {102: 3}}
# Module 10 is assembled at WS-4, module 11 manufactured at WS-1.
MODULE_STATIONS = {10: 4, 11: 1}


class FakeInventory:
    """Stock levels keyed by (workstation, item type, item id)."""

    def __init__(self):
        self.stock: dict[tuple[int, str, int], int] = {}
        self.failing_debits: set[int] = set()
        self.down = False
        self.calls: list[tuple] = []

    @staticmethod
    def _key(workstation_id: int, item_id: int, item_type: str | None) -> tuple[int, str, int]:
        return workstation_id, item_type or item_type_for_workstation(workstation_id).value, item_id

    def _guard(self, operation: str) -> None:
        if self.down:
            raise CollaboratorFailure("inventory", operation, "connection refused")

    def put(self, workstation_id: int, item_id: int, quantity: int, item_type: str | None = None) -> None:
        key = self._key(workstation_id, item_id, item_type)
        self.stock[key] = self.stock.get(key, 0) + quantity

    def level(self, workstation_id: int, item_id: int, item_type: str | None = None) -> int:
        return self.stock.get(self._key(workstation_id, item_id, item_type), 0)

    async def check_stock(self, workstation_id, item_id, quantity, item_type=None):
        self._guard("check_stock")
        self.calls.append(("check_stock", workstation_id, item_id, quantity))
        return self.level(workstation_id, item_id, item_type) >= quantity

    async def debit(self, workstation_id, item_id, quantity, item_type=None, notes=None):
        self._guard("debit")
        self.calls.append(("debit", workstation_id, item_id, quantity))
        key = self._key(workstation_id, item_id, item_type)
        if item_id in self.failing_debits or self.stock.get(key, 0) < quantity:
            return False
        self.stock[key] -= quantity
        return True

    async def credit(self, workstation_id, item_id, quantity, item_type=None, notes=None):
        self._guard("credit")
        self.calls.append(("credit", workstation_id, item_id, quantity))
        self.put(workstation_id, item_id, quantity, item_type)
        return True

    async def adjust(self, request: StockAdjustment):
        if request.delta < 0:
            return await self.debit(request.workstation_id, request.item_id, -request.delta, request.item_type)
        return await self.credit(request.workstation_id, request.item_id, request.delta, request.item_type)


class FakeBom:
    def __init__(self):
        self.products = {pid: dict(bom) for pid, bom in PRODUCT_BOM.items()}
        self.modules = {mid: dict(bom) for mid, bom in MODULE_BOM.items()}
        self.stations = dict(MODULE_STATIONS)
        self.down = False

    def _guard(self, operation: str) -> None:
        if self.down:
            raise CollaboratorFailure("masterdata", operation, "timeout")

    async def explode_product(self, product_id, quantity):
        self._guard("explode_product")
        return scale_bom(self.products.get(product_id, {}).items(), quantity)

    async def explode_module(self, module_id, quantity):
        self._guard("explode_module")
        return scale_bom(self.modules.get(module_id, {}).items(), quantity)

    async def lookup_name(self, item_type, item_id):
        self._guard("lookup_name")
        return f"{item_type.title()} {item_id}"

    async def production_workstation(self, module_id):
        self._guard("production_workstation")
        return self.stations.get(module_id)


class FakeScheduler:
    def __init__(self):
        self.down = False
        self.submitted: list[str] = []
        self.task_updates: list[tuple[str, str]] = []

    async def submit(self, production_order):
        if self.down:
            raise CollaboratorFailure("scheduler", "submit", "timeout")
        self.submitted.append(production_order.order_number)
        return ScheduleReceipt(schedule_id="SCH-1", estimated_duration_minutes=90)

    async def update_task_status(self, task_id, status):
        self.task_updates.append((task_id, status))
        return True

    async def get_scheduled_tasks(self, schedule_id):
        return []


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with session_maker() as session:
        yield session


@pytest.fixture
def inventory():
    return FakeInventory()


@pytest.fixture
def bom():
    return FakeBom()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def gateways(inventory, bom, scheduler):
    return Gateways(inventory=inventory, bom=bom, scheduler=scheduler)


@pytest.fixture
def enqueued():
    return []


@pytest.fixture
def runner(db, gateways, enqueued):
    return EffectRunner(db, gateways, enqueue=enqueued.append)


@pytest.fixture
def place_order(db, bom, inventory):
    """Create a customer order from (item_type, item_id, quantity) tuples, optionally confirmed."""

    async def _place(*lines, workstation_id=7, confirm=False, threshold=100):
        order, _ = await CustomerOrderService.create(
            db,
            bom,
            workstation_id,
            [{"item_type": t, "item_id": i, "quantity": q} for t, i, q in lines],
        )
        if confirm:
            order, _ = await CustomerOrderService.confirm(db, inventory, order.id, threshold)
        return order

    return _place
