from django.apps import AppConfig


class InventoryConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'wms.inventory'

    def ready(self):
        """Import signals when app is ready"""
        import wms.inventory.signals  # noqa: F401  # Inventory row per part
