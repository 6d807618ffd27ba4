# core/apps.py

from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
    verbose_name = "Core"

    container = None

    def ready(self):
        # Services are built once, after every model is registered.
        from core.container import build_container

        self.container = build_container()
