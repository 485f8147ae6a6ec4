import uuid

from django.db import models
from django.db.models import Q


class Product(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    category_name = models.CharField(max_length=120, blank=True)
    image_url = models.URLField(max_length=500, blank=True)

    price = models.DecimalField(max_digits=12, decimal_places=2)
    # supplier cost; markup is computed from this when present
    original_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    quantity = models.PositiveIntegerField(default=0)  # available stock
    in_stock = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gte=0), name="product_quantity_non_negative"),
        ]

    def __str__(self):
        return self.name

    @property
    def cost(self):
        return self.original_price if self.original_price is not None else self.price


class PricingRangeSetting(models.Model):
    range_id = models.CharField(max_length=20, primary_key=True)
    percentage = models.DecimalField(max_digits=7, decimal_places=2, default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "pricing_range_settings"
        ordering = ["range_id"]

    def __str__(self):
        return f"{self.range_id}: {self.percentage}%"
