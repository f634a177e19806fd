"""ORDERFLOW — Final Assembly Orders endpoints (WS-6)."""
from uuid import UUID

from fastapi import APIRouter, Query

from orderflow.api.deps import DbSession, GatewaysDep, Runner
from orderflow.schemas.common import ApiResponse, paginate
from orderflow.schemas.final_assembly import FinalAssemblyOrderResponse
from orderflow.services.final_assembly_service import FinalAssemblyService

router = APIRouter()


@router.get("", response_model=ApiResponse[list[FinalAssemblyOrderResponse]])
async def list_final_assembly_orders(
    db: DbSession,
    status: str | None = Query(None),
    parent_type: str | None = Query(None, alias="parentType"),
    parent_id: UUID | None = Query(None, alias="parentId"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
):
    if parent_type and parent_id is not None:
        orders = await FinalAssemblyService.list_for_parent(db, parent_type, parent_id)
    else:
        orders = await FinalAssemblyService.list_orders(db, status=status)
    page_orders, meta = paginate(orders, page, page_size)
    return ApiResponse(data=[FinalAssemblyOrderResponse.model_validate(o) for o in page_orders], meta=meta)


@router.get("/{order_id}", response_model=ApiResponse[FinalAssemblyOrderResponse])
async def get_final_assembly_order(order_id: UUID, db: DbSession):
    return ApiResponse(data=FinalAssemblyOrderResponse.model_validate(await FinalAssemblyService.get(db, order_id)))


@router.post("/{order_id}/confirm", response_model=ApiResponse[FinalAssemblyOrderResponse])
async def confirm_final_assembly_order(order_id: UUID, db: DbSession, runner: Runner):
    data = await runner.execute(FinalAssemblyService.confirm(db, order_id), FinalAssemblyOrderResponse.model_validate)
    return ApiResponse(data=data)


@router.post("/{order_id}/start", response_model=ApiResponse[FinalAssemblyOrderResponse])
async def start_final_assembly_order(order_id: UUID, db: DbSession, runner: Runner):
    data = await runner.execute(FinalAssemblyService.start(db, order_id), FinalAssemblyOrderResponse.model_validate)
    return ApiResponse(data=data)


@router.post("/{order_id}/complete", response_model=ApiResponse[FinalAssemblyOrderResponse])
async def complete_final_assembly_order(order_id: UUID, db: DbSession, runner: Runner):
    data = await runner.execute(FinalAssemblyService.complete(db, order_id), FinalAssemblyOrderResponse.model_validate)
    return ApiResponse(data=data)


@router.post("/{order_id}/submit", response_model=ApiResponse[FinalAssemblyOrderResponse])
async def submit_final_assembly_order(order_id: UUID, db: DbSession, gateways: GatewaysDep, runner: Runner):
    """Credit the Plant Warehouse; the last submission re-opens the customer order."""
    data = await runner.execute(
        FinalAssemblyService.submit(db, gateways, order_id), FinalAssemblyOrderResponse.model_validate
    )
    return ApiResponse(data=data)
