from django.apps import AppConfig


class OrganizationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "organizations"
    verbose_name = "Tenants"

    def ready(self):
        # Registers the owner membership handler
        from . import signals  # noqa: F401
