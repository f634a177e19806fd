"""ORDERFLOW — Warehouse Orders endpoints."""
from uuid import UUID

from fastapi import APIRouter, Query

from orderflow.api.deps import DbSession, GatewaysDep, Runner
from orderflow.schemas.common import ApiResponse, ReasonRequest, paginate
from orderflow.schemas.final_assembly import FinalAssemblyOrderResponse
from orderflow.schemas.warehouse_order import WarehouseOrderResponse
from orderflow.services.warehouse_order_service import WarehouseOrderService

router = APIRouter()


@router.get("", response_model=ApiResponse[list[WarehouseOrderResponse]])
async def list_warehouse_orders(
    db: DbSession,
    status: str | None = Query(None),
    workstation_id: int | None = Query(None, alias="workstationId"),
    customer_order_id: UUID | None = Query(None, alias="customerOrderId"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
):
    if customer_order_id is not None:
        orders = await WarehouseOrderService.list_for_customer_order(db, customer_order_id)
    else:
        orders = await WarehouseOrderService.list_orders(db, status=status, workstation_id=workstation_id)
    page_orders, meta = paginate(orders, page, page_size)
    return ApiResponse(data=[WarehouseOrderResponse.model_validate(o) for o in page_orders], meta=meta)


@router.get("/{order_id}", response_model=ApiResponse[WarehouseOrderResponse])
async def get_warehouse_order(order_id: UUID, db: DbSession):
    return ApiResponse(data=WarehouseOrderResponse.model_validate(await WarehouseOrderService.get(db, order_id)))


@router.get("/{order_id}/final-assembly-orders", response_model=ApiResponse[list[FinalAssemblyOrderResponse]])
async def list_warehouse_order_final_assembly(order_id: UUID, db: DbSession):
    await WarehouseOrderService.get(db, order_id)
    orders = await WarehouseOrderService.final_assembly_orders(db, order_id)
    return ApiResponse(data=[FinalAssemblyOrderResponse.model_validate(o) for o in orders])


@router.post("/{order_id}/confirm", response_model=ApiResponse[WarehouseOrderResponse])
async def confirm_warehouse_order(order_id: UUID, db: DbSession, gateways: GatewaysDep, runner: Runner):
    data = await runner.execute(
        WarehouseOrderService.confirm(db, gateways, order_id), WarehouseOrderResponse.model_validate
    )
    return ApiResponse(data=data)


@router.post("/{order_id}/fulfill", response_model=ApiResponse[WarehouseOrderResponse])
async def fulfill_warehouse_order(order_id: UUID, db: DbSession, gateways: GatewaysDep, runner: Runner):
    """Debit available modules, create final assembly orders, request production for the rest."""
    data = await runner.execute(
        WarehouseOrderService.fulfill(db, gateways, order_id), WarehouseOrderResponse.model_validate
    )
    return ApiResponse(data=data)


@router.post("/{order_id}/cancel", response_model=ApiResponse[WarehouseOrderResponse])
async def cancel_warehouse_order(order_id: UUID, db: DbSession, runner: Runner, body: ReasonRequest | None = None):
    data = await runner.execute(
        WarehouseOrderService.cancel(db, order_id, body.reason if body else None),
        WarehouseOrderResponse.model_validate,
    )
    return ApiResponse(data=data)
