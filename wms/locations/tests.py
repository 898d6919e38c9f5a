"""
Test suite for warehouse locations
Tests: location codes, rack arrangement, shelf sync, layout editing and location lookup
"""
from types import SimpleNamespace
from django.test import TestCase
from rest_framework import status
from wms.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from wms.core.exceptions import BusinessRuleError
from wms.locations.layout import arrange_racks, location_sort_key, parse_location_code
from wms.locations.models import Rack, Shelf
from wms.locations.services import get_layout, lookup_location, sync_shelves, update_layout


def fake_rack(id, row_number, pos_x=0, pos_y=0):
    return SimpleNamespace(id=id, row_number=row_number, pos_x=pos_x, pos_y=pos_y)


class LocationCodeTests(TestCase):
    def test_parse(self):
        self.assertEqual(parse_location_code('a-01-02'), ('A', '01', '02'))
        self.assertIsNone(parse_location_code('A-01'))
        self.assertIsNone(parse_location_code(''))
        self.assertIsNone(parse_location_code(None))

    def test_sort_key_walks_zone_row_shelf(self):
        codes = ['B-01-01', 'A-10-01', 'A-02-03', None, 'A-02-01']
        self.assertEqual(sorted(codes, key=location_sort_key), ['A-02-01', 'A-02-03', 'A-10-01', 'B-01-01', None])


class ArrangeRacksTests(TestCase):
    def setUp(self):
        self.racks = [fake_rack(i, str(i).zfill(2)) for i in (3, 1, 4, 2)]

    def test_row_major_by_row_number(self):
        placements = arrange_racks(self.racks, columns=2, gap_x=10, gap_y=5)
        self.assertEqual(
            [(rack.row_number, x, y) for rack, x, y in placements],
            [('01', 0, 0), ('02', 10, 0), ('03', 0, 5), ('04', 10, 5)]
        )

    def test_column_major(self):
        placements = arrange_racks(self.racks, columns=2, gap_x=10, gap_y=5, arrange_by='column')
        self.assertEqual(
            [(rack.row_number, x, y) for rack, x, y in placements],
            [('01', 0, 0), ('02', 0, 5), ('03', 10, 0), ('04', 10, 5)]
        )

    def test_rows_fix_column_count(self):
        racks = [fake_rack(i, str(i)) for i in range(1, 6)]
        placements = arrange_racks(racks, rows=2, gap_x=1, gap_y=1)
        # 5 racks on 2 rows -> 3 columns
        self.assertEqual(max(x for _, x, _ in placements), 2)
        self.assertEqual(max(y for _, _, y in placements), 1)

    def test_start_offset_and_current_sort(self):
        racks = [fake_rack(1, '01', pos_x=50, pos_y=0), fake_rack(2, '02', pos_x=0, pos_y=0)]
        placements = arrange_racks(racks, columns=2, start_x=100, start_y=20, gap_x=10, sort_by='current')
        self.assertEqual([(rack.id, x, y) for rack, x, y in placements], [(2, 100, 20), (1, 110, 20)])

    def test_empty(self):
        self.assertEqual(arrange_racks([]), [])


class ShelfSyncTests(TestCase):
    def test_grow_and_shrink(self):
        rack = TestDataFactory.create_rack(shelf_count=3)
        self.assertEqual(sorted(rack.shelves.values_list('shelf_number', flat=True)), ['01', '02', '03'])

        rack.shelf_count = 5
        rack.save()
        self.assertEqual(sync_shelves(rack), (2, 0))

        rack.shelf_count = 2
        rack.save()
        self.assertEqual(sync_shelves(rack), (0, 3))
        self.assertEqual(Shelf.objects.filter(rack=rack).count(), 2)


class LayoutServiceTests(TestCase):
    def setUp(self):
        self.warehouse = TestDataFactory.create_warehouse(code='WH1')
        self.zone = TestDataFactory.create_zone(self.warehouse, code='A')
        self.rack = TestDataFactory.create_rack(self.zone, row_number='01', shelf_count=2)
        self.part = TestDataFactory.create_part(part_code='BOLT', stock=7, storage_location='A-01-02')

    def test_layout_counts_parts(self):
        layout = get_layout(self.warehouse)
        rack = layout['zones'][0]['racks'][0]
        self.assertEqual(rack['part_count'], 1)
        shelves = {shelf['location_code']: shelf['part_count'] for shelf in rack['shelves']}
        self.assertEqual(shelves, {'A-01-01': 0, 'A-01-02': 1})

    def test_update_layout(self):
        update_layout(self.warehouse, zones=[{'id': self.zone.id, 'pos_x': 30, 'pos_y': 40}],
                      racks=[{'id': self.rack.id, 'pos_x': 5, 'pos_y': 6}])
        self.rack.refresh_from_db()
        self.zone.refresh_from_db()
        self.assertEqual((self.zone.pos_x, self.zone.pos_y), (30, 40))
        self.assertEqual((self.rack.pos_x, self.rack.pos_y), (5, 6))

    def test_update_layout_rejects_foreign_rack(self):
        other_rack = TestDataFactory.create_rack(row_number='09')
        with self.assertRaises(BusinessRuleError):
            update_layout(self.warehouse, racks=[{'id': other_rack.id, 'pos_x': 1, 'pos_y': 1}])

    def test_lookup(self):
        location = lookup_location('a-01-02')
        self.assertEqual(location['warehouse']['code'], 'WH1')
        self.assertEqual(location['parts'][0]['part_code'], 'BOLT')
        self.assertEqual(location['parts'][0]['current_qty'], 7)
        self.assertIsNone(lookup_location('A-01-09'))
        with self.assertRaises(BusinessRuleError):
            lookup_location('nowhere')


class LocationAPITests(TestCase):
    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(role='operator'))
        self.warehouse = TestDataFactory.create_warehouse()
        self.zone = TestDataFactory.create_zone(self.warehouse, code='B')

    def test_create_rack_creates_shelves(self):
        response = self.client.post('/api/v1/racks/', {
            'zone': self.zone.id,
            'row_number': '3',
            'shelf_count': 4
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['row_number'], '03')
        self.assertEqual(len(response.data['shelves']), 4)

    def test_duplicate_rack_rejected(self):
        TestDataFactory.create_rack(self.zone, row_number='01')
        response = self.client.post('/api/v1/racks/', {'zone': self.zone.id, 'row_number': '01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_too_many_shelves_rejected(self):
        response = self.client.post('/api/v1/racks/', {
            'zone': self.zone.id, 'row_number': '02', 'shelf_count': 21
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_patch_rack_resyncs_shelves(self):
        rack = TestDataFactory.create_rack(self.zone, shelf_count=2)
        response = self.client.patch(f'/api/v1/racks/{rack.id}/', {'shelf_count': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['shelves']), 6)

    def test_bulk_arrange(self):
        for row in ('01', '02', '03'):
            TestDataFactory.create_rack(self.zone, row_number=row)
        response = self.client.post(f'/api/v1/zones/{self.zone.id}/bulk-arrange/', {
            'columns': 3, 'gap_x': 20, 'shelf_count': 4
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([u['pos_x'] for u in response.data['updates']], [0, 20, 40])
        self.assertTrue(all(rack.shelf_count == 4 for rack in Rack.objects.filter(zone=self.zone)))
        self.assertEqual(Shelf.objects.filter(rack__zone=self.zone).count(), 12)

    def test_bulk_arrange_empty_zone(self):
        response = self.client.post(f'/api/v1/zones/{self.zone.id}/bulk-arrange/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_layout_put(self):
        response = self.client.put(f'/api/v1/warehouses/{self.warehouse.id}/layout/', {
            'zones': [{'id': self.zone.id, 'pos_x': 12.5, 'pos_y': 3}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['zones'][0]['pos_x'], 12.5)

    def test_lookup_endpoint(self):
        TestDataFactory.create_rack(self.zone, row_number='01')
        response = self.client.get('/api/v1/locations/?code=B-01-01')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/v1/locations/?code=B-07-01')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.get('/api/v1/locations/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/locations/?code=bad')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
