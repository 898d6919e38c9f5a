# Generated manually

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Inventory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('current_qty', models.IntegerField(default=0)),
                ('reserved_qty', models.IntegerField(default=0)),
                ('incoming_qty', models.IntegerField(default=0)),
                ('last_inbound_date', models.DateTimeField(blank=True, null=True)),
                ('last_outbound_date', models.DateTimeField(blank=True, null=True)),
                ('last_audit_date', models.DateTimeField(blank=True, null=True)),
                ('last_audit_qty', models.IntegerField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('part', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='inventory', to='catalog.part')),
            ],
            options={
                'db_table': 'inventory',
                'verbose_name_plural': 'inventory',
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('transaction_code', models.CharField(max_length=50, unique=True)),
                ('transaction_type', models.CharField(choices=[('inbound', 'Inbound'), ('outbound', 'Outbound'), ('adjustment', 'Adjustment'), ('transfer', 'Transfer')], max_length=20)),
                ('quantity', models.IntegerField()),
                ('before_qty', models.IntegerField()),
                ('after_qty', models.IntegerField()),
                ('reference_type', models.CharField(choices=[('ORDER', 'Purchase Order'), ('SALES_ORDER', 'Sales Order'), ('PICK', 'Picking'), ('PICK_REVERT', 'Picking Revert'), ('AUDIT', 'Stock Audit'), ('MANUAL', 'Manual')], default='MANUAL', max_length=20)),
                ('reference_id', models.CharField(blank=True, max_length=50, null=True)),
                ('unit_price', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('total_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('reason', models.CharField(blank=True, max_length=255)),
                ('performed_by', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('transaction_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transactions', to=settings.AUTH_USER_MODEL)),
                ('part', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='catalog.part')),
            ],
            options={
                'db_table': 'transactions',
                'ordering': ['-transaction_date', '-id'],
                'indexes': [
                    models.Index(fields=['part', 'transaction_date'], name='tx_part_date_idx'),
                    models.Index(fields=['transaction_type'], name='tx_type_idx'),
                    models.Index(fields=['reference_type', 'reference_id'], name='tx_reference_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockAudit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('audit_code', models.CharField(max_length=50, unique=True)),
                ('audit_date', models.DateField(default=django.utils.timezone.localdate)),
                ('audit_type', models.CharField(choices=[('monthly', 'Monthly'), ('quarterly', 'Quarterly'), ('yearly', 'Yearly'), ('spot', 'Spot Check')], default='spot', max_length=20)),
                ('status', models.CharField(choices=[('in_progress', 'In Progress'), ('completed', 'Completed'), ('approved', 'Approved')], default='in_progress', max_length=20)),
                ('total_items', models.IntegerField(default=0)),
                ('checked_items', models.IntegerField(default=0)),
                ('discrepancy_count', models.IntegerField(default=0)),
                ('notes', models.TextField(blank=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_stock_audits', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stock_audits', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'stock_audits',
                'ordering': ['-audit_date', '-id'],
            },
        ),
        migrations.CreateModel(
            name='StockAuditItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('system_qty', models.IntegerField()),
                ('counted_qty', models.IntegerField(blank=True, null=True)),
                ('discrepancy', models.IntegerField(blank=True, null=True)),
                ('notes', models.TextField(blank=True)),
                ('counted_at', models.DateTimeField(blank=True, null=True)),
                ('audit', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='inventory.stockaudit')),
                ('part', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='audit_items', to='catalog.part')),
            ],
            options={
                'db_table': 'stock_audit_items',
                'ordering': ['part__storage_location', 'part__part_code'],
                'unique_together': {('audit', 'part')},
            },
        ),
    ]
