import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PricingRangeSetting",
            fields=[
                ("range_id", models.CharField(max_length=20, primary_key=True, serialize=False)),
                ("percentage", models.DecimalField(decimal_places=2, default=0, max_digits=7)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "pricing_range_settings",
                "ordering": ["range_id"],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("category_name", models.CharField(blank=True, max_length=120)),
                ("image_url", models.URLField(blank=True, max_length=500)),
                ("price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("original_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("quantity", models.PositiveIntegerField(default=0)),
                ("in_stock", models.BooleanField(default=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("quantity__gte", 0)), name="product_quantity_non_negative"),
                ],
            },
        ),
    ]
