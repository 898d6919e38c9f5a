# Generated manually

import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        ('sales', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='MrpResult',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('calculation_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('gross_requirement', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=14)),
                ('current_stock', models.IntegerField(default=0)),
                ('reserved_qty', models.IntegerField(default=0)),
                ('incoming_qty', models.IntegerField(default=0)),
                ('safety_stock', models.IntegerField(default=0)),
                ('net_requirement', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=14)),
                ('suggested_order_qty', models.IntegerField(default=0)),
                ('required_date', models.DateField(blank=True, null=True)),
                ('suggested_order_date', models.DateField(blank=True, null=True)),
                ('urgency', models.CharField(choices=[('critical', 'Critical'), ('high', 'High'), ('medium', 'Medium'), ('low', 'Low')], default='low', max_length=10)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('ordered', 'Ordered'), ('completed', 'Completed')], default='pending', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('part', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='mrp_results', to='catalog.part')),
                ('sales_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='mrp_results', to='sales.salesorder')),
            ],
            options={
                'db_table': 'mrp_results',
                'ordering': ['suggested_order_date', '-suggested_order_qty'],
                'indexes': [
                    models.Index(fields=['status', 'urgency'], name='mrp_status_urgency_idx'),
                    models.Index(fields=['part', 'status'], name='mrp_part_status_idx'),
                ],
            },
        ),
    ]
