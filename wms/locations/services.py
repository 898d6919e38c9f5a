import logging
from collections import Counter

from django.db import transaction

from wms.catalog.models import Part
from wms.core.exceptions import BusinessRuleError
from .layout import arrange_racks, format_location_code, parse_location_code, shelf_number
from .models import Rack, Shelf, Zone

logger = logging.getLogger('wms.locations')


def sync_shelves(rack):
    """Create missing shelves up to shelf_count and drop any beyond it"""
    existing = {shelf.shelf_number: shelf for shelf in rack.shelves.all()}
    wanted = {shelf_number(i) for i in range(1, rack.shelf_count + 1)}

    missing = sorted(wanted - existing.keys())
    if missing:
        Shelf.objects.bulk_create([Shelf(rack=rack, shelf_number=number) for number in missing])
    extra = [shelf.id for number, shelf in existing.items() if number not in wanted]
    if extra:
        Shelf.objects.filter(id__in=extra).delete()
    return len(missing), len(extra)


def part_counts_by_location(codes=None):
    parts = Part.objects.filter(is_active=True).exclude(storage_location__isnull=True).exclude(storage_location='')
    if codes is not None:
        parts = parts.filter(storage_location__in=codes)
    return Counter(parts.values_list('storage_location', flat=True))


def get_layout(warehouse):
    """Warehouse floor plan: zones, racks and shelves with part counts"""
    zones = warehouse.zones.prefetch_related('racks__shelves').order_by('code')
    counts = part_counts_by_location()

    zone_data = []
    for zone in zones:
        racks = []
        for rack in zone.racks.all():
            shelves = []
            for shelf in rack.shelves.all():
                code = format_location_code(zone.code, rack.row_number, shelf.shelf_number)
                shelves.append({
                    'id': shelf.id,
                    'shelf_number': shelf.shelf_number,
                    'capacity': shelf.capacity,
                    'location_code': code,
                    'part_count': counts.get(code, 0),
                })
            racks.append({
                'id': rack.id,
                'row_number': rack.row_number,
                'pos_x': rack.pos_x,
                'pos_y': rack.pos_y,
                'shelf_count': rack.shelf_count,
                'is_active': rack.is_active,
                'part_count': sum(shelf['part_count'] for shelf in shelves),
                'shelves': shelves,
            })
        zone_data.append({
            'id': zone.id,
            'code': zone.code,
            'name': zone.name,
            'description': zone.description,
            'color': zone.color,
            'pos_x': zone.pos_x,
            'pos_y': zone.pos_y,
            'width': zone.width,
            'height': zone.height,
            'racks': racks,
        })

    return {
        'id': warehouse.id,
        'code': warehouse.code,
        'name': warehouse.name,
        'width': warehouse.width,
        'height': warehouse.height,
        'description': warehouse.description,
        'is_active': warehouse.is_active,
        'zones': zone_data,
    }


def update_layout(warehouse, zones=None, racks=None):
    """
    Save dragged positions in one transaction.

    zones: [{'id', 'pos_x', 'pos_y', 'width'?, 'height'?}]
    racks: [{'id', 'pos_x', 'pos_y'}]
    Ids outside this warehouse are rejected.
    """
    zones = zones or []
    racks = racks or []
    zone_ids = set(warehouse.zones.values_list('id', flat=True))

    with transaction.atomic():
        for data in zones:
            if data.get('id') not in zone_ids:
                raise BusinessRuleError(f"Zone {data.get('id')} is not in warehouse {warehouse.code}", code='invalid_zone')
            fields = {key: data[key] for key in ('pos_x', 'pos_y', 'width', 'height') if key in data}
            if fields:
                Zone.objects.filter(id=data['id']).update(**fields)
        rack_ids = set(Rack.objects.filter(zone_id__in=zone_ids).values_list('id', flat=True))
        for data in racks:
            if data.get('id') not in rack_ids:
                raise BusinessRuleError(f"Rack {data.get('id')} is not in warehouse {warehouse.code}", code='invalid_rack')
            fields = {key: data[key] for key in ('pos_x', 'pos_y') if key in data}
            if fields:
                Rack.objects.filter(id=data['id']).update(**fields)

    logger.info(f"Layout of {warehouse.code} updated: {len(zones)} zone(s), {len(racks)} rack(s)")


def lookup_location(code):
    """Shelf, rack, zone and stored parts for a ZONE-ROW-SHELF code; None when unknown"""
    parsed = parse_location_code(code)
    if parsed is None:
        raise BusinessRuleError(
            'Invalid location code. Expected ZONE-ROW-SHELF, e.g. A-01-02', code='invalid_location'
        )
    zone_code, row_number, number = parsed
    shelf = (
        Shelf.objects.select_related('rack__zone__warehouse')
        .filter(shelf_number=number, rack__row_number=row_number, rack__zone__code=zone_code)
        .first()
    )
    if shelf is None:
        return None

    location_code = format_location_code(zone_code, row_number, number)
    parts = (
        Part.objects.filter(storage_location=location_code, is_active=True)
        .select_related('inventory', 'category')
        .order_by('part_code')
    )
    rack = shelf.rack
    zone = rack.zone
    return {
        'location_code': location_code,
        'shelf': {'id': shelf.id, 'shelf_number': shelf.shelf_number, 'capacity': shelf.capacity},
        'rack': {'id': rack.id, 'row_number': rack.row_number, 'pos_x': rack.pos_x, 'pos_y': rack.pos_y},
        'zone': {'id': zone.id, 'code': zone.code, 'name': zone.name, 'color': zone.color,
                 'pos_x': zone.pos_x, 'pos_y': zone.pos_y},
        'warehouse': {'id': zone.warehouse.id, 'code': zone.warehouse.code, 'name': zone.warehouse.name},
        'parts': [
            {
                'id': part.id,
                'part_code': part.part_code,
                'part_name': part.part_name,
                'unit': part.unit,
                'current_qty': part.inventory.current_qty if hasattr(part, 'inventory') else 0,
                'category': part.category.name if part.category else None,
            }
            for part in parts
        ],
        'part_count': len(parts),
    }


def bulk_arrange(zone, **options):
    """Reposition every rack of a zone on a grid; returns [(rack, x, y)]"""
    racks = list(zone.racks.all())
    if not racks:
        raise BusinessRuleError(f'Zone {zone.code} has no racks', code='empty_zone')

    shelf_count = options.pop('shelf_count', None)
    placements = arrange_racks(racks, **options)
    with transaction.atomic():
        for rack, pos_x, pos_y in placements:
            rack.pos_x = pos_x
            rack.pos_y = pos_y
            update_fields = ['pos_x', 'pos_y', 'updated_at']
            if shelf_count:
                rack.shelf_count = shelf_count
                update_fields.append('shelf_count')
            rack.save(update_fields=update_fields)
            if shelf_count:
                sync_shelves(rack)

    logger.info(f"Arranged {len(placements)} rack(s) in zone {zone.code}")
    return placements
