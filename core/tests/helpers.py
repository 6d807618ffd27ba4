# core/tests/helpers.py

"""
Shared fixtures for app test suites: one company, one user per role,
a warehouse and inventory items with opening stock.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache.backends.locmem import LocMemCache

from companies.models import Company
from core.container import build_container
from inventory.models import InventoryItem, Warehouse
from inventory.services.stock_levels import apply_stock_levels
from permissions.roles import ROLE_ADMIN

User = get_user_model()


def make_company(code="ACME", name="Acme Textiles"):
    return Company.objects.create(name=name, code=code, email=f"{code.lower()}@example.com")


def make_user(company, *, role=ROLE_ADMIN, email=None, password="password123"):
    email = email or f"{role}.{company.code.lower()}@example.com"
    return User.objects.create_user(
        email=email,
        password=password,
        company=company,
        role=role,
        first_name=role.title(),
    )


def make_services():
    # A private cache keeps cached lookups from leaking between tests.
    return build_container(cache=LocMemCache("tests", {}))


def make_warehouse(company, code="MAIN", name="Main Store"):
    return Warehouse.objects.create(company=company, code=code, name=name)


def make_item(
    company,
    *,
    name="Cotton Fabric",
    item_code=None,
    category=InventoryItem.Category.RAW_MATERIAL,
    unit="kg",
    current_stock="0",
    reserved_stock="0",
    cost_price="10.00",
    reorder_level="0",
    warehouse=None,
    **extra,
):
    item = InventoryItem(
        company=company,
        item_code=item_code or name.replace(" ", "")[:6].upper() + "001",
        name=name,
        category=category,
        unit=unit,
        warehouse=warehouse,
        cost_price=Decimal(cost_price),
        average_cost=Decimal(cost_price),
        current_stock=Decimal(current_stock),
        reserved_stock=Decimal(reserved_stock),
        reorder_level=Decimal(reorder_level),
        **extra,
    )
    apply_stock_levels(item)
    item.save()
    return item
