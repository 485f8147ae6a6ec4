import uuid

from django.conf import settings
from django.db import models


class PendingOrder(models.Model):
    class Status(models.TextChoices):
        AWAITING_PAYMENT = "awaiting_payment", "Awaiting payment"
        CONVERTED = "converted", "Converted"
        FAILED = "failed", "Failed"
        CANCELLED = "cancelled", "Cancelled"
        EXPIRED = "expired", "Expired"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="pending_orders")

    cart_items = models.JSONField(default=list)  # snapshot of the cart at creation
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    credits = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="GHS")

    delivery_address = models.JSONField(default=dict)
    delivery_notes = models.TextField(blank=True)

    payment_reference = models.CharField(max_length=100, unique=True)
    payment_access_code = models.CharField(max_length=100, blank=True)
    authorization_url = models.URLField(max_length=500, blank=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.AWAITING_PAYMENT)
    order = models.OneToOneField(
        "orders.Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="pending_order"
    )

    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    expires_at = models.DateTimeField()
    converted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "pending_orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "expires_at"], name="pending_status_expiry_idx"),
        ]

    def __str__(self):
        return f"{self.payment_reference} ({self.status})"

    @property
    def reserved_lines(self):
        """{product_id: quantity} as reserved against stock."""
        return {item["product_id"]: int(item["quantity"]) for item in self.cart_items}
