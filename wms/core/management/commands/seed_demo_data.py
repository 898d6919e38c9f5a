"""
Management command to load a small demo data set
Usage: python manage.py seed_demo_data [--with-stock] [--with-orders]
"""
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from wms.catalog.models import BomItem, Category, Part, Product
from wms.inventory.models import Inventory
from wms.inventory.services import process_transaction
from wms.locations.models import Rack, Warehouse, Zone
from wms.locations.services import sync_shelves
from wms.parties.models import Supplier
from wms.sales.models import SalesOrder, SalesOrderItem

SUPPLIERS = [
    # code, name, lead time
    ('SUP-STEEL', 'Northern Steel Works', 14),
    ('SUP-FAST', 'Fastener Direct', 5),
    ('SUP-PLAS', 'Polymer Components', 10),
]

CATEGORIES = [
    ('RAW', 'Raw Material'),
    ('FAST', 'Fasteners'),
    ('PLAS', 'Plastic Parts'),
]

PARTS = [
    # code, name, category, supplier, unit price, safety stock, MOQ, location, initial stock
    ('TUBE-25', 'Steel tube 25mm', 'RAW', 'SUP-STEEL', '4.80', 40, 100, 'A-01-01', 120),
    ('PLATE-3', 'Steel plate 3mm', 'RAW', 'SUP-STEEL', '12.50', 10, 20, 'A-01-02', 15),
    ('BOLT-M8', 'Hex bolt M8x40', 'FAST', 'SUP-FAST', '0.12', 500, 1000, 'B-01-01', 2400),
    ('NUT-M8', 'Hex nut M8', 'FAST', 'SUP-FAST', '0.05', 500, 1000, 'B-01-02', 300),
    ('CAP-25', 'End cap 25mm', 'PLAS', 'SUP-PLAS', '0.30', 100, 500, 'B-02-01', 80),
    ('GLIDE-01', 'Floor glide', 'PLAS', 'SUP-PLAS', '0.45', 100, 200, None, 0),
]

PRODUCTS = [
    ('CHAIR-STD', 'Standard chair', [('TUBE-25', '4', '0.02'), ('BOLT-M8', '8', '0.01'),
                                     ('NUT-M8', '8', '0.01'), ('CAP-25', '4', '0'), ('GLIDE-01', '4', '0')]),
    ('TABLE-120', 'Table 120cm', [('TUBE-25', '6', '0.02'), ('PLATE-3', '1', '0.05'),
                                  ('BOLT-M8', '12', '0.01'), ('NUT-M8', '12', '0.01'), ('CAP-25', '4', '0')]),
]


class Command(BaseCommand):
    help = "Loads demo suppliers, parts, products, BOMs and a warehouse layout"

    def add_arguments(self, parser):
        parser.add_argument(
            '--with-stock',
            action='store_true',
            help='Post inbound transactions for the initial stock of each part',
        )
        parser.add_argument(
            '--with-orders',
            action='store_true',
            help='Create two open sales orders so MRP has demand to work with',
        )

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS("=" * 60))
        self.stdout.write(self.style.SUCCESS("LOADING DEMO DATA"))
        self.stdout.write(self.style.SUCCESS("=" * 60))

        with transaction.atomic():
            suppliers = {}
            for code, name, lead_time in SUPPLIERS:
                suppliers[code], _ = Supplier.objects.get_or_create(
                    code=code, defaults={'name': name, 'lead_time_days': lead_time}
                )
            categories = {}
            for code, name in CATEGORIES:
                categories[code], _ = Category.objects.get_or_create(code=code, defaults={'name': name})

            created_parts = 0
            parts = {}
            for code, name, category, supplier, price, safety, moq, location, _stock in PARTS:
                parts[code], created = Part.objects.get_or_create(part_code=code, defaults={
                    'part_name': name,
                    'category': categories[category],
                    'supplier': suppliers[supplier],
                    'unit_price': Decimal(price),
                    'safety_stock': safety,
                    'min_order_qty': moq,
                    'lead_time_days': suppliers[supplier].lead_time_days,
                    'storage_location': location,
                })
                created_parts += int(created)

            for code, name, lines in PRODUCTS:
                product, _ = Product.objects.get_or_create(product_code=code, defaults={'product_name': name})
                for part_code, qty, loss in lines:
                    BomItem.objects.get_or_create(product=product, part=parts[part_code], defaults={
                        'quantity_per_unit': Decimal(qty),
                        'loss_rate': Decimal(loss),
                    })

            self._load_layout()

        self.stdout.write(f"  Suppliers: {len(suppliers)}  Categories: {len(categories)}  New parts: {created_parts}")

        if options['with_stock']:
            posted = 0
            for code, *_rest, stock in PARTS:
                part = parts[code]
                if stock and Inventory.objects.get(part=part).current_qty == 0:
                    process_transaction(part, 'inbound', stock, reason='Demo opening stock', performed_by='seed')
                    posted += 1
            self.stdout.write(f"  Opening stock posted for {posted} parts")

        if options['with_orders']:
            self._load_orders()

        self.stdout.write(self.style.SUCCESS("Demo data loaded."))

    def _load_layout(self):
        warehouse, _ = Warehouse.objects.get_or_create(code='WH1', defaults={'name': 'Main warehouse'})
        for index, (zone_code, color) in enumerate((('A', '#3B82F6'), ('B', '#10B981'))):
            zone, _ = Zone.objects.get_or_create(
                warehouse=warehouse, code=zone_code,
                defaults={'name': f'Zone {zone_code}', 'color': color, 'pos_x': index * 40}
            )
            for row in ('01', '02'):
                rack, created = Rack.objects.get_or_create(zone=zone, row_number=row, defaults={'shelf_count': 3})
                if created:
                    sync_shelves(rack)

    def _load_orders(self):
        today = timezone.localdate()
        orders = [
            ('DEMO-SO-1', 'Office refit', today + timedelta(days=10), [('CHAIR-STD', 40)]),
            ('DEMO-SO-2', 'Canteen', today + timedelta(days=25), [('CHAIR-STD', 60), ('TABLE-120', 15)]),
        ]
        for code, project, due_date, lines in orders:
            order, created = SalesOrder.objects.get_or_create(
                order_code=code, defaults={'project': project, 'due_date': due_date}
            )
            if not created:
                self.stdout.write(self.style.WARNING(f"  {code} already exists, skipped"))
                continue
            for product_code, qty in lines:
                SalesOrderItem.objects.create(
                    sales_order=order, product=Product.objects.get(product_code=product_code), order_qty=qty
                )
            order.recalculate_total()
            self.stdout.write(f"  Created sales order {code}")
