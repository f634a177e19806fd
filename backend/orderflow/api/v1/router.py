"""ORDERFLOW — API v1 router aggregation."""
from fastapi import APIRouter

from orderflow.api.v1.endpoints import (
    admin,
    control_orders,
    customer_orders,
    final_assembly_orders,
    production_orders,
    supply_orders,
    warehouse_orders,
    workstation_orders,
)

api_router = APIRouter()

api_router.include_router(customer_orders.router, prefix="/customer-orders", tags=["customer-orders"])
api_router.include_router(warehouse_orders.router, prefix="/warehouse-orders", tags=["warehouse-orders"])
api_router.include_router(production_orders.router, prefix="/production-orders", tags=["production-orders"])
api_router.include_router(control_orders.router, prefix="/control-orders", tags=["control-orders"])
api_router.include_router(workstation_orders.router, prefix="/workstation-orders", tags=["workstation-orders"])
api_router.include_router(supply_orders.router, prefix="/supply-orders", tags=["supply-orders"])
api_router.include_router(final_assembly_orders.router, prefix="/final-assembly-orders", tags=["final-assembly-orders"])
api_router.include_router(admin.audit_router, prefix="/audit", tags=["audit"])
api_router.include_router(admin.webhooks_router, prefix="/webhooks", tags=["webhooks"])
api_router.include_router(admin.config_router, prefix="/config", tags=["config"])
