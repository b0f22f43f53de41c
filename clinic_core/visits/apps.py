from django.apps import AppConfig


class VisitsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "clinic_core.visits"

    def ready(self):
        # Register subscribers (import side-effect)
        from clinic_core.visits import subscribers  # noqa: F401
