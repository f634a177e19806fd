"""ORDERFLOW — Supply Orders endpoints (Parts Supply Warehouse)."""
from uuid import UUID

from fastapi import APIRouter, Query

from orderflow.api.deps import DbSession, GatewaysDep, Runner
from orderflow.schemas.common import ApiResponse, ReasonRequest, paginate
from orderflow.schemas.supply_order import SupplyOrderCreate, SupplyOrderResponse
from orderflow.services.supply_order_service import SupplyOrderService

router = APIRouter()


@router.get("", response_model=ApiResponse[list[SupplyOrderResponse]])
async def list_supply_orders(
    db: DbSession,
    supply_workstation_id: int | None = Query(None, alias="supplyWorkstationId"),
    requesting_workstation_id: int | None = Query(None, alias="requestingWorkstationId"),
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
):
    orders = await SupplyOrderService.list_orders(
        db,
        supply_workstation_id=supply_workstation_id,
        requesting_workstation_id=requesting_workstation_id,
        status=status,
    )
    page_orders, meta = paginate(orders, page, page_size)
    return ApiResponse(data=[SupplyOrderResponse.model_validate(o) for o in page_orders], meta=meta)


@router.post("", response_model=ApiResponse[SupplyOrderResponse], status_code=201)
async def create_supply_order(body: SupplyOrderCreate, db: DbSession, gateways: GatewaysDep, runner: Runner):
    data = await runner.execute(
        SupplyOrderService.create(
            db,
            gateways,
            body.requesting_workstation_id,
            [i.model_dump() for i in body.items],
            priority=body.priority,
            requested_by_time=body.requested_by_time,
            notes=body.notes,
        ),
        SupplyOrderResponse.model_validate,
    )
    return ApiResponse(data=data)


@router.get("/{order_id}", response_model=ApiResponse[SupplyOrderResponse])
async def get_supply_order(order_id: UUID, db: DbSession):
    return ApiResponse(data=SupplyOrderResponse.model_validate(await SupplyOrderService.get(db, order_id)))


@router.post("/{order_id}/fulfill", response_model=ApiResponse[SupplyOrderResponse])
async def fulfill_supply_order(order_id: UUID, db: DbSession, runner: Runner):
    data = await runner.execute(SupplyOrderService.fulfill(db, order_id), SupplyOrderResponse.model_validate)
    return ApiResponse(data=data)


@router.post("/{order_id}/reject", response_model=ApiResponse[SupplyOrderResponse])
async def reject_supply_order(order_id: UUID, db: DbSession, runner: Runner, body: ReasonRequest | None = None):
    data = await runner.execute(
        SupplyOrderService.reject(db, order_id, body.reason if body else None), SupplyOrderResponse.model_validate
    )
    return ApiResponse(data=data)


@router.post("/{order_id}/cancel", response_model=ApiResponse[SupplyOrderResponse])
async def cancel_supply_order(order_id: UUID, db: DbSession, runner: Runner, body: ReasonRequest | None = None):
    data = await runner.execute(
        SupplyOrderService.cancel(db, order_id, body.reason if body else None), SupplyOrderResponse.model_validate
    )
    return ApiResponse(data=data)
