from django.apps import AppConfig


class MrpConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'wms.mrp'
    verbose_name = 'MRP'
