"""
Management command to run the MRP calculation outside the API
Usage: python manage.py run_mrp [--part-ids 1,2] [--sales-order-ids 3] [--keep-existing]
"""
from django.core.management.base import BaseCommand

from wms.core.utils import parse_id_list
from wms.mrp.services import calculate_mrp


class Command(BaseCommand):
    help = "Runs MRP over open sales orders and stores the results"

    def add_arguments(self, parser):
        parser.add_argument('--part-ids', default='', help='Comma separated part ids to limit the run')
        parser.add_argument('--sales-order-ids', default='', help='Comma separated sales order ids to limit the run')
        parser.add_argument(
            '--keep-existing',
            action='store_true',
            help='Keep pending results from earlier runs',
        )

    def handle(self, *args, **options):
        results, summary = calculate_mrp(
            part_ids=parse_id_list(options['part_ids']) or None,
            sales_order_ids=parse_id_list(options['sales_order_ids']) or None,
            clear_existing=not options['keep_existing'],
        )

        self.stdout.write(self.style.SUCCESS("=" * 60))
        self.stdout.write(self.style.SUCCESS("MRP CALCULATION"))
        self.stdout.write(self.style.SUCCESS("=" * 60))
        self.stdout.write(f"  Parts evaluated:      {summary['total_parts']}")
        self.stdout.write(f"  Parts needing order:  {summary['parts_needing_order']}")
        self.stdout.write(f"  Total suggested qty:  {summary['total_suggested_qty']}")
        self.stdout.write(
            f"  Urgency:              critical={summary['critical_count']} high={summary['high_count']} "
            f"medium={summary['medium_count']} low={summary['low_count']}"
        )
        if summary['critical_count']:
            self.stdout.write(self.style.WARNING(f"{summary['critical_count']} part(s) are already past their order date"))
        self.stdout.write(self.style.SUCCESS(f"Stored {len(results)} MRP results."))
