"""ORDERFLOW — SQLAlchemy models."""
from orderflow.models.audit import AuditEvent
from orderflow.models.control_order import ControlOrder, WorkstationOrder
from orderflow.models.customer_order import CustomerOrder, CustomerOrderItem
from orderflow.models.final_assembly import FinalAssemblyOrder
from orderflow.models.production_order import ProductionOrder, ProductionOrderItem
from orderflow.models.supply_order import SupplyOrder, SupplyOrderItem
from orderflow.models.system_config import SystemConfiguration
from orderflow.models.warehouse_order import WarehouseOrder, WarehouseOrderItem, WarehouseOrderProduct
from orderflow.models.webhook import Webhook, WebhookDelivery

__all__ = [
    "CustomerOrder", "CustomerOrderItem",
    "WarehouseOrder", "WarehouseOrderItem", "WarehouseOrderProduct",
    "ProductionOrder", "ProductionOrderItem",
    "ControlOrder", "WorkstationOrder",
    "SupplyOrder", "SupplyOrderItem",
    "FinalAssemblyOrder",
    "AuditEvent",
    "Webhook", "WebhookDelivery",
    "SystemConfiguration",
]
