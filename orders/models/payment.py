from django.conf import settings
from django.db import models


class PaymentTransaction(models.Model):
    class Status(models.TextChoices):
        INITIALIZED = "initialized", "Initialized"
        SUCCESS = "success", "Success"
        FAILED = "failed", "Failed"

    reference = models.CharField(max_length=100, unique=True, db_index=True)
    pending_order = models.ForeignKey(
        "orders.PendingOrder", on_delete=models.CASCADE, related_name="transactions"
    )
    order = models.ForeignKey(
        "orders.Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="transactions"
    )
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="payment_transactions")

    provider = models.CharField(max_length=30, default="paystack")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="GHS")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.INITIALIZED)

    access_code = models.CharField(max_length=100, blank=True)
    channel = models.CharField(max_length=50, blank=True)
    gateway_response = models.CharField(max_length=255, blank=True)
    fees = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    # Paystack response data
    raw_payload = models.JSONField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payment_transactions"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.reference} - {self.amount} - {self.status}"

    @property
    def is_terminal(self):
        return self.status != self.Status.INITIALIZED
