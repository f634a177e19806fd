"""ORDERFLOW — Production Orders endpoints."""
from uuid import UUID

from fastapi import APIRouter, Query

from orderflow.api.deps import DbSession, GatewaysDep, Runner
from orderflow.schemas.common import ApiResponse, Progress, ReasonRequest, paginate
from orderflow.schemas.production_order import (
    ControlOrderResponse,
    ProductionOrderCreate,
    ProductionOrderResponse,
    ScheduleRequest,
)
from orderflow.services.production_order_service import ProductionOrderService

router = APIRouter()


@router.get("", response_model=ApiResponse[list[ProductionOrderResponse]])
async def list_production_orders(
    db: DbSession,
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
):
    orders = await ProductionOrderService.list_orders(db, status=status)
    page_orders, meta = paginate(orders, page, page_size)
    return ApiResponse(data=[ProductionOrderResponse.model_validate(o) for o in page_orders], meta=meta)


@router.post("", response_model=ApiResponse[ProductionOrderResponse], status_code=201)
async def create_production_order(body: ProductionOrderCreate, db: DbSession, gateways: GatewaysDep, runner: Runner):
    """Standalone production order, not derived from a customer or warehouse order."""
    data = await runner.execute(
        ProductionOrderService.create_standalone(
            db,
            gateways,
            [i.model_dump() for i in body.items],
            priority=body.priority,
            due_date=body.due_date,
            notes=body.notes,
            created_by_workstation_id=body.created_by_workstation_id,
        ),
        ProductionOrderResponse.model_validate,
    )
    return ApiResponse(data=data)


@router.get("/{order_id}", response_model=ApiResponse[ProductionOrderResponse])
async def get_production_order(order_id: UUID, db: DbSession):
    return ApiResponse(data=ProductionOrderResponse.model_validate(await ProductionOrderService.get(db, order_id)))


@router.post("/{order_id}/confirm", response_model=ApiResponse[ProductionOrderResponse])
async def confirm_production_order(order_id: UUID, db: DbSession, runner: Runner):
    data = await runner.execute(ProductionOrderService.confirm(db, order_id), ProductionOrderResponse.model_validate)
    return ApiResponse(data=data)


@router.post("/{order_id}/schedule", response_model=ApiResponse[ProductionOrderResponse])
async def schedule_production_order(
    order_id: UUID, db: DbSession, gateways: GatewaysDep, runner: Runner, body: ScheduleRequest | None = None
):
    data = await runner.execute(
        ProductionOrderService.schedule(db, gateways, order_id, body.schedule_id if body else None),
        ProductionOrderResponse.model_validate,
    )
    return ApiResponse(data=data)


@router.post("/{order_id}/dispatch", response_model=ApiResponse[list[ControlOrderResponse]])
async def dispatch_production_order(order_id: UUID, db: DbSession, gateways: GatewaysDep, runner: Runner):
    """Create the control orders and their workstation orders."""
    data = await runner.execute(
        ProductionOrderService.dispatch(db, gateways, order_id),
        lambda controls: [ControlOrderResponse.model_validate(c) for c in controls],
    )
    return ApiResponse(data=data)


@router.post("/{order_id}/cancel", response_model=ApiResponse[ProductionOrderResponse])
async def cancel_production_order(order_id: UUID, db: DbSession, runner: Runner, body: ReasonRequest | None = None):
    data = await runner.execute(
        ProductionOrderService.cancel(db, order_id, body.reason if body else None),
        ProductionOrderResponse.model_validate,
    )
    return ApiResponse(data=data)


@router.get("/{order_id}/progress", response_model=ApiResponse[Progress])
async def production_order_progress(order_id: UUID, db: DbSession):
    return ApiResponse(data=Progress(**await ProductionOrderService.progress(db, order_id)))


@router.get("/{order_id}/control-orders", response_model=ApiResponse[list[ControlOrderResponse]])
async def list_production_order_controls(order_id: UUID, db: DbSession):
    await ProductionOrderService.get(db, order_id)
    controls = await ProductionOrderService.control_orders(db, order_id)
    return ApiResponse(data=[ControlOrderResponse.model_validate(c) for c in controls])
