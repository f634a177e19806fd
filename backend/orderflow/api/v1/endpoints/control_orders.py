"""ORDERFLOW — Control Orders endpoints (read-only; driven by workstation orders)."""
from uuid import UUID

from fastapi import APIRouter, Query

from orderflow.api.deps import DbSession
from orderflow.schemas.common import ApiResponse, Progress, paginate
from orderflow.schemas.production_order import ControlOrderResponse
from orderflow.services.workstation_service import ControlOrderService

router = APIRouter()


@router.get("", response_model=ApiResponse[list[ControlOrderResponse]])
async def list_control_orders(
    db: DbSession,
    control_type: str | None = Query(None, alias="type", description="PRODUCTION or ASSEMBLY"),
    status: str | None = Query(None),
    production_order_id: UUID | None = Query(None, alias="productionOrderId"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
):
    controls = await ControlOrderService.list_orders(
        db, control_type=control_type, status=status, production_order_id=production_order_id
    )
    page_controls, meta = paginate(controls, page, page_size)
    return ApiResponse(data=[ControlOrderResponse.model_validate(c) for c in page_controls], meta=meta)


@router.get("/{control_order_id}", response_model=ApiResponse[ControlOrderResponse])
async def get_control_order(control_order_id: UUID, db: DbSession):
    return ApiResponse(data=ControlOrderResponse.model_validate(await ControlOrderService.get(db, control_order_id)))


@router.get("/{control_order_id}/progress", response_model=ApiResponse[Progress])
async def control_order_progress(control_order_id: UUID, db: DbSession):
    return ApiResponse(data=Progress(**await ControlOrderService.progress(db, control_order_id)))
