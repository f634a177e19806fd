"""ORDERFLOW — Workstation Orders endpoints (shop-floor operator actions)."""
from uuid import UUID

from fastapi import APIRouter, Query

from orderflow.api.deps import DbSession, GatewaysDep, Runner
from orderflow.schemas.common import ApiResponse, ReasonRequest
from orderflow.schemas.production_order import OperatorNotesRequest, SupplyRequest, WorkstationOrderResponse
from orderflow.schemas.supply_order import SupplyOrderResponse
from orderflow.services.supply_order_service import SupplyOrderService
from orderflow.services.workstation_service import WorkstationOrderService

router = APIRouter()


@router.get("", response_model=ApiResponse[list[WorkstationOrderResponse]])
async def list_workstation_orders(
    db: DbSession,
    workstation_id: int = Query(..., alias="workstationId"),
    active_only: bool = Query(False, alias="activeOnly"),
    status: str | None = Query(None),
):
    orders = await WorkstationOrderService.list_for_workstation(
        db, workstation_id, active_only=active_only, status=status
    )
    return ApiResponse(data=[WorkstationOrderResponse.model_validate(o) for o in orders])


@router.get("/{order_id}", response_model=ApiResponse[WorkstationOrderResponse])
async def get_workstation_order(order_id: UUID, db: DbSession):
    return ApiResponse(data=WorkstationOrderResponse.model_validate(await WorkstationOrderService.get(db, order_id)))


@router.post("/{order_id}/start", response_model=ApiResponse[WorkstationOrderResponse])
async def start_workstation_order(order_id: UUID, db: DbSession, runner: Runner):
    data = await runner.execute(WorkstationOrderService.start(db, order_id), WorkstationOrderResponse.model_validate)
    return ApiResponse(data=data)


@router.post("/{order_id}/complete", response_model=ApiResponse[WorkstationOrderResponse])
async def complete_workstation_order(order_id: UUID, db: DbSession, gateways: GatewaysDep, runner: Runner):
    """Credit the produced module to the Modules Supermarket and cascade upwards."""
    data = await runner.execute(
        WorkstationOrderService.complete(db, gateways, order_id), WorkstationOrderResponse.model_validate
    )
    return ApiResponse(data=data)


@router.post("/{order_id}/halt", response_model=ApiResponse[WorkstationOrderResponse])
async def halt_workstation_order(order_id: UUID, db: DbSession, runner: Runner, body: ReasonRequest | None = None):
    data = await runner.execute(
        WorkstationOrderService.halt(db, order_id, body.reason if body else None),
        WorkstationOrderResponse.model_validate,
    )
    return ApiResponse(data=data)


@router.post("/{order_id}/resume", response_model=ApiResponse[WorkstationOrderResponse])
async def resume_workstation_order(order_id: UUID, db: DbSession, runner: Runner):
    data = await runner.execute(WorkstationOrderService.resume(db, order_id), WorkstationOrderResponse.model_validate)
    return ApiResponse(data=data)


@router.put("/{order_id}/notes", response_model=ApiResponse[WorkstationOrderResponse])
async def update_workstation_order_notes(order_id: UUID, body: OperatorNotesRequest, db: DbSession, runner: Runner):
    data = await runner.execute(
        WorkstationOrderService.update_operator_notes(db, order_id, body.notes),
        WorkstationOrderResponse.model_validate,
    )
    return ApiResponse(data=data)


@router.post("/{order_id}/request-supplies", response_model=ApiResponse[SupplyOrderResponse], status_code=201)
async def request_workstation_order_supplies(
    order_id: UUID, db: DbSession, gateways: GatewaysDep, runner: Runner, body: SupplyRequest | None = None
):
    """Raise a supply order for the module's parts; the order waits for them."""
    body = body or SupplyRequest()
    data = await runner.execute(
        SupplyOrderService.create_for_workstation_order(
            db, gateways, order_id, body.priority, body.requested_by_time, body.notes
        ),
        SupplyOrderResponse.model_validate,
    )
    return ApiResponse(data=data)


@router.post("/{order_id}/cancel", response_model=ApiResponse[WorkstationOrderResponse])
async def cancel_workstation_order(
    order_id: UUID, db: DbSession, gateways: GatewaysDep, runner: Runner, body: ReasonRequest | None = None
):
    data = await runner.execute(
        WorkstationOrderService.cancel(db, gateways, order_id, body.reason if body else None),
        WorkstationOrderResponse.model_validate,
    )
    return ApiResponse(data=data)
