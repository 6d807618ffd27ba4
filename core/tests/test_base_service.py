# core/tests/test_base_service.py

import uuid

from django.test import TestCase, override_settings

from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.tests.helpers import make_company, make_services, make_warehouse
from inventory.models import Warehouse


class CompanyScopedServiceTests(TestCase):
    """
    GUARANTEES:
    - Reads never cross companies
    - Ids are validated before hitting the database
    - Cached lookups are dropped on every persist
    - delete() is a soft delete where the model has is_active
    """

    def setUp(self):
        self.company = make_company()
        self.other = make_company(code="OTHER", name="Other Mills")
        self.warehouses = make_services().warehouses
        self.main = make_warehouse(self.company)

    def test_get_is_company_scoped(self):
        self.assertEqual(self.warehouses.get(self.company, self.main.pk), self.main)
        with self.assertRaises(NotFoundError) as ctx:
            self.warehouses.get(self.other, self.main.pk)
        self.assertEqual(ctx.exception.message, "Warehouse not found")

    def test_invalid_id(self):
        with self.assertRaises(ValidationError) as ctx:
            self.warehouses.get(self.company, "not-a-uuid")
        self.assertEqual(ctx.exception.message, "Invalid warehouse id")
        with self.assertRaises(NotFoundError):
            self.warehouses.get(self.company, uuid.uuid4())

    def test_company_is_required(self):
        with self.assertRaises(ValidationError):
            self.warehouses.get_queryset(None)

    def test_cached_lookup(self):
        cached = self.warehouses.get_cached(self.company, self.main.pk)
        Warehouse.objects.filter(pk=self.main.pk).update(name="Renamed outside")
        self.assertEqual(self.warehouses.get_cached(self.company, self.main.pk).name, cached.name)

        self.warehouses.update(self.company, self.main.pk, {"name": "Renamed"})
        self.assertEqual(self.warehouses.get_cached(self.company, self.main.pk).name, "Renamed")

    def test_reads(self):
        make_warehouse(self.company, code="DYE", name="Dye House")
        make_warehouse(self.other, code="MAIN", name="Elsewhere")

        self.assertEqual(self.warehouses.count(self.company), 2)
        self.assertTrue(self.warehouses.exists(self.company, code="DYE"))
        self.assertFalse(self.warehouses.exists(self.other, code="DYE"))
        self.assertEqual(
            [w.code for w in self.warehouses.find_many(self.company)], ["DYE", "MAIN"]
        )
        self.assertEqual(self.warehouses.find_one(self.company, code="MAIN"), self.main)

    def test_conflict(self):
        with self.assertRaises(ConflictError):
            self.warehouses.create(self.company, {"code": "main", "name": "Again"})

    def test_soft_delete(self):
        self.warehouses.delete(self.company, self.main.pk)
        self.assertFalse(Warehouse.objects.get(pk=self.main.pk).is_active)

    @override_settings(DEFAULT_PAGE_LIMIT=2, MAX_PAGE_LIMIT=3)
    def test_paginate(self):
        for index in range(4):
            make_warehouse(self.company, code=f"W{index}", name=f"W{index}")
        qs = self.warehouses.find_many(self.company)

        page = self.warehouses.paginate(qs)
        self.assertEqual((page.page, page.limit, page.total, page.pages), (1, 2, 5, 3))
        self.assertTrue(page.has_next)
        self.assertFalse(page.has_prev)

        page = self.warehouses.paginate(qs, page="2", limit="50")
        self.assertEqual(page.limit, 3)
        self.assertEqual(len(page.results), 2)
        self.assertFalse(page.has_next)

        with self.assertRaises(ValidationError):
            self.warehouses.paginate(qs, page="0")
        with self.assertRaises(ValidationError):
            self.warehouses.paginate(qs, limit="ten")
