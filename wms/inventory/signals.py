from django.db.models.signals import post_save
from django.dispatch import receiver

from wms.catalog.models import Part
from .models import Inventory


@receiver(post_save, sender=Part)
def create_inventory_for_part(sender, instance, created, **kwargs):
    """Every part owns exactly one inventory row"""
    if created:
        Inventory.objects.get_or_create(part=instance)
