# core/container.py

"""
SERVICE CONTAINER

All domain services are constructed exactly once, here, and wired through
their constructors. CoreConfig.ready() builds the container; views reach
it through core.api.views.ServiceViewMixin. Tests build their own
container (or single services) with whatever cache they want.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.apps import apps

if TYPE_CHECKING:
    from inventory.services.inventory_service import InventoryService
    from inventory.services.movement_service import StockMovementService
    from inventory.services.warehouse_service import WarehouseService
    from production.services.production_service import ProductionService
    from purchases.services.purchase_order_service import PurchaseOrderService
    from purchases.services.supplier_service import SupplierService
    from sales.services.customer_order_service import CustomerOrderService
    from sales.services.customer_service import CustomerService
    from sales.services.invoice_service import InvoiceService
    from sales.services.quotation_service import QuotationService
    from visitors.services.visitor_service import VisitorService


@dataclass(frozen=True)
class ServiceContainer:
    warehouses: WarehouseService
    movements: StockMovementService
    inventory: InventoryService
    production: ProductionService
    suppliers: SupplierService
    purchase_orders: PurchaseOrderService
    customers: CustomerService
    customer_orders: CustomerOrderService
    quotations: QuotationService
    invoices: InvoiceService
    visitors: VisitorService


def build_container(*, cache=None) -> ServiceContainer:
    from inventory.services.inventory_service import InventoryService
    from inventory.services.movement_service import StockMovementService
    from inventory.services.warehouse_service import WarehouseService
    from production.services.production_service import ProductionService
    from purchases.services.purchase_order_service import PurchaseOrderService
    from purchases.services.supplier_service import SupplierService
    from sales.services.customer_order_service import CustomerOrderService
    from sales.services.customer_service import CustomerService
    from sales.services.invoice_service import InvoiceService
    from sales.services.quotation_service import QuotationService
    from visitors.services.visitor_service import VisitorService

    warehouses = WarehouseService(cache=cache)
    movements = StockMovementService(cache=cache)
    inventory = InventoryService(movements=movements, warehouses=warehouses, cache=cache)
    suppliers = SupplierService(cache=cache)
    customers = CustomerService(cache=cache)
    customer_orders = CustomerOrderService(customers=customers, cache=cache)

    return ServiceContainer(
        warehouses=warehouses,
        movements=movements,
        inventory=inventory,
        production=ProductionService(inventory=inventory, cache=cache),
        suppliers=suppliers,
        purchase_orders=PurchaseOrderService(
            suppliers=suppliers, inventory=inventory, cache=cache
        ),
        customers=customers,
        customer_orders=customer_orders,
        quotations=QuotationService(
            customers=customers, customer_orders=customer_orders, cache=cache
        ),
        invoices=InvoiceService(customers=customers, cache=cache),
        visitors=VisitorService(cache=cache),
    )


def get_container() -> ServiceContainer:
    return apps.get_app_config("core").container
