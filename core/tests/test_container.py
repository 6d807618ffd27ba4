# core/tests/test_container.py

from django.core.cache.backends.locmem import LocMemCache
from django.test import SimpleTestCase

from core.container import ServiceContainer, build_container, get_container


class ServiceContainerTests(SimpleTestCase):
    """
    GUARANTEES:
    - every field is built with the service class it is annotated with
    - one shared cache is wired into every service
    """

    def test_fields_match_their_annotations(self):
        services = build_container(cache=LocMemCache("container", {}))
        for name, annotation in ServiceContainer.__annotations__.items():
            with self.subTest(service=name):
                self.assertEqual(type(getattr(services, name)).__name__, annotation)

    def test_services_share_the_cache_and_dependencies(self):
        cache = LocMemCache("container", {})
        services = build_container(cache=cache)
        self.assertIs(services.inventory.cache, cache)
        self.assertIs(services.visitors.cache, cache)
        self.assertIs(services.production.inventory, services.inventory)
        self.assertIs(services.invoices.customers, services.customers)

    def test_app_container_is_built_once(self):
        self.assertIs(get_container(), get_container())
        self.assertIsInstance(get_container(), ServiceContainer)
