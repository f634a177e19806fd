"""ORDERFLOW — Customer Orders endpoints."""
from uuid import UUID

from fastapi import APIRouter, Query

from orderflow.api.deps import DbSession, GatewaysDep, Runner, Threshold
from orderflow.schemas.common import ApiResponse, ReasonRequest, paginate
from orderflow.schemas.customer_order import (
    CanCompleteResponse,
    CustomerOrderCreate,
    CustomerOrderResponse,
    FulfillmentResponse,
    ScenarioResponse,
)
from orderflow.services.customer_order_service import CustomerOrderService
from orderflow.services.fulfillment_service import FulfillmentOutcome, FulfillmentService

router = APIRouter()


def _order_to_response(order) -> CustomerOrderResponse:
    return CustomerOrderResponse.model_validate(order)


def _outcome_to_response(outcome: FulfillmentOutcome) -> FulfillmentResponse:
    return FulfillmentResponse(
        order=_order_to_response(outcome.order),
        scenario=outcome.scenario.value,
        scenario_number=outcome.scenario.number,
        warehouse_order_id=outcome.warehouse_order.id if outcome.warehouse_order else None,
        production_order_id=outcome.production_order.id if outcome.production_order else None,
    )


@router.get("", response_model=ApiResponse[list[CustomerOrderResponse]])
async def list_customer_orders(
    db: DbSession,
    status: str | None = Query(None, description="Filter by status (e.g. CONFIRMED, PROCESSING)"),
    workstation_id: int | None = Query(None, alias="workstationId"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
):
    orders = await CustomerOrderService.list_orders(db, status=status, workstation_id=workstation_id)
    page_orders, meta = paginate(orders, page, page_size)
    return ApiResponse(data=[_order_to_response(o) for o in page_orders], meta=meta)


@router.post("", response_model=ApiResponse[CustomerOrderResponse], status_code=201)
async def create_customer_order(body: CustomerOrderCreate, db: DbSession, gateways: GatewaysDep, runner: Runner):
    """Create a PENDING order; every invalid line is reported in one response."""
    data = await runner.execute(
        CustomerOrderService.create(
            db, gateways.bom, body.workstation_id, [i.model_dump() for i in body.items], body.notes
        ),
        _order_to_response,
    )
    return ApiResponse(data=data)


@router.get("/number/{order_number}", response_model=ApiResponse[CustomerOrderResponse])
async def get_customer_order_by_number(order_number: str, db: DbSession):
    return ApiResponse(data=_order_to_response(await CustomerOrderService.get_by_number(db, order_number)))


@router.get("/{order_id}", response_model=ApiResponse[CustomerOrderResponse])
async def get_customer_order(order_id: UUID, db: DbSession):
    return ApiResponse(data=_order_to_response(await CustomerOrderService.get(db, order_id)))


@router.delete("/{order_id}", response_model=ApiResponse[dict])
async def delete_customer_order(order_id: UUID, db: DbSession, runner: Runner):
    """Only PENDING orders can be deleted."""
    deleted = await runner.execute(CustomerOrderService.delete(db, order_id))
    return ApiResponse(data={"deleted": str(deleted)})


@router.post("/{order_id}/confirm", response_model=ApiResponse[CustomerOrderResponse])
async def confirm_customer_order(
    order_id: UUID, db: DbSession, gateways: GatewaysDep, threshold: Threshold, runner: Runner
):
    data = await runner.execute(
        CustomerOrderService.confirm(db, gateways.inventory, order_id, threshold), _order_to_response
    )
    return ApiResponse(data=data)


@router.post("/{order_id}/fulfill", response_model=ApiResponse[FulfillmentResponse])
async def fulfill_customer_order(
    order_id: UUID, db: DbSession, gateways: GatewaysDep, threshold: Threshold, runner: Runner
):
    """Route the order to the fulfillment scenario live stock dictates."""
    data = await runner.execute(
        FulfillmentService.fulfill(db, gateways, order_id, threshold), _outcome_to_response
    )
    return ApiResponse(data=data)


@router.post("/{order_id}/processing", response_model=ApiResponse[CustomerOrderResponse])
async def mark_customer_order_processing(order_id: UUID, db: DbSession, runner: Runner):
    data = await runner.execute(CustomerOrderService.mark_processing(db, order_id), _order_to_response)
    return ApiResponse(data=data)


@router.post("/{order_id}/complete", response_model=ApiResponse[CustomerOrderResponse])
async def complete_customer_order(order_id: UUID, db: DbSession, runner: Runner):
    data = await runner.execute(CustomerOrderService.complete(db, order_id), _order_to_response)
    return ApiResponse(data=data)


@router.post("/{order_id}/cancel", response_model=ApiResponse[CustomerOrderResponse])
async def cancel_customer_order(order_id: UUID, db: DbSession, runner: Runner, body: ReasonRequest | None = None):
    reason = body.reason if body else None
    data = await runner.execute(CustomerOrderService.cancel(db, order_id, reason), _order_to_response)
    return ApiResponse(data=data)


@router.get("/{order_id}/can-complete", response_model=ApiResponse[CanCompleteResponse])
async def can_complete_customer_order(order_id: UUID, db: DbSession):
    can_complete = await CustomerOrderService.can_complete(db, order_id)
    return ApiResponse(data=CanCompleteResponse(order_id=order_id, can_complete=can_complete))


@router.get("/{order_id}/scenario", response_model=ApiResponse[ScenarioResponse])
async def check_customer_order_scenario(
    order_id: UUID, db: DbSession, gateways: GatewaysDep, threshold: Threshold, runner: Runner
):
    """Read-only re-evaluation of the predicted trigger scenario against current stock."""
    scenario = await runner.execute(
        CustomerOrderService.check_current_scenario(db, gateways.inventory, order_id, threshold)
    )
    return ApiResponse(data=ScenarioResponse(order_id=order_id, trigger_scenario=scenario))
