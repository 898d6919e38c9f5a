"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from wms.parties.models import Supplier
from wms.catalog.models import Category, Part, Product, BomItem
from wms.inventory.models import Inventory
from wms.sales.models import SalesOrder, SalesOrderItem
from wms.purchasing.models import PurchaseOrder, PurchaseOrderItem
from wms.locations.models import Warehouse, Zone, Rack
from wms.locations.services import sync_shelves
from decimal import Decimal
from django.utils import timezone
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='admin', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_supplier(name=None, code=None, lead_time_days=7):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        if not code:
            code = f'SUP-{TestDataFactory.random_string(6).upper()}'
        return Supplier.objects.create(
            code=code,
            name=name,
            phone=f'9{random.randint(100000000, 999999999)}',
            email=f'{code.lower()}@test.com',
            lead_time_days=lead_time_days
        )

    @staticmethod
    def create_category(name=None, code=None):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        if not code:
            code = f'CAT-{TestDataFactory.random_string(6).upper()}'
        return Category.objects.create(code=code, name=name)

    @staticmethod
    def create_part(part_code=None, part_name=None, supplier=None, category=None, stock=0,
                    safety_stock=0, min_order_qty=1, lead_time_days=7, unit_price=None,
                    storage_location=None):
        """Create a test part; its inventory row is created by signal and set to `stock`"""
        if not part_code:
            part_code = f'P-{TestDataFactory.random_string(8).upper()}'
        if not part_name:
            part_name = f'Part {part_code}'
        part = Part.objects.create(
            part_code=part_code,
            part_name=part_name,
            supplier=supplier,
            category=category,
            unit_price=unit_price if unit_price is not None else Decimal('10.00'),
            safety_stock=safety_stock,
            min_order_qty=min_order_qty,
            lead_time_days=lead_time_days,
            storage_location=storage_location
        )
        if stock:
            Inventory.objects.filter(part=part).update(current_qty=stock)
        return part

    @staticmethod
    def create_product(product_code=None, product_name=None):
        """Create a test product"""
        if not product_code:
            product_code = f'PR-{TestDataFactory.random_string(8).upper()}'
        return Product.objects.create(
            product_code=product_code,
            product_name=product_name or f'Product {product_code}'
        )

    @staticmethod
    def create_bom_item(product, part, quantity_per_unit=None, loss_rate=None):
        """Create a test BOM line"""
        return BomItem.objects.create(
            product=product,
            part=part,
            quantity_per_unit=quantity_per_unit if quantity_per_unit is not None else Decimal('1'),
            loss_rate=loss_rate if loss_rate is not None else Decimal('0')
        )

    @staticmethod
    def create_sales_order(items=None, order_code=None, due_date=None, status='received', project='', user=None):
        """Create a test sales order; items is a list of (product, qty)"""
        if not order_code:
            order_code = f'SO-{TestDataFactory.random_string(8).upper()}'
        order = SalesOrder.objects.create(
            order_code=order_code,
            order_date=timezone.localdate(),
            due_date=due_date,
            status=status,
            project=project,
            created_by=user
        )
        for product, qty in items or []:
            SalesOrderItem.objects.create(sales_order=order, product=product, order_qty=qty)
        order.recalculate_total()
        return order

    @staticmethod
    def create_purchase_order(supplier=None, items=None, status='draft', order_code=None, user=None, expected_date=None):
        """Create a test purchase order; items is a list of (part, qty)"""
        if not supplier:
            supplier = TestDataFactory.create_supplier()
        if not order_code:
            order_code = f'PO-{TestDataFactory.random_string(8).upper()}'
        order = PurchaseOrder.objects.create(
            order_code=order_code,
            supplier=supplier,
            status=status,
            expected_date=expected_date,
            created_by=user
        )
        for part, qty in items or []:
            PurchaseOrderItem.objects.create(order=order, part=part, order_qty=qty, unit_price=part.unit_price)
        order.recalculate_total()
        return order

    @staticmethod
    def create_warehouse(code=None, name=None):
        """Create a test warehouse"""
        if not code:
            code = f'WH-{TestDataFactory.random_string(4).upper()}'
        return Warehouse.objects.create(code=code, name=name or f'Warehouse {code}')

    @staticmethod
    def create_zone(warehouse=None, code='A', name=None):
        """Create a test zone"""
        if not warehouse:
            warehouse = TestDataFactory.create_warehouse()
        return Zone.objects.create(warehouse=warehouse, code=code, name=name or f'Zone {code}')

    @staticmethod
    def create_rack(zone=None, row_number='01', shelf_count=3):
        """Create a test rack with its shelves"""
        if not zone:
            zone = TestDataFactory.create_zone()
        rack = Rack.objects.create(zone=zone, row_number=row_number, shelf_count=shelf_count)
        sync_shelves(rack)
        return rack


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
