from django.db import models


class OrderStatusHistory(models.Model):
    """
    Append-only audit trail of status changes, for orders and for the
    pending orders that precede them.
    """
    ACTOR_CHOICES = [
        ("customer", "Customer"),
        ("admin", "Admin"),
        ("system", "System"),
        ("gateway", "Payment gateway"),
    ]

    order = models.ForeignKey(
        "orders.Order", on_delete=models.PROTECT, null=True, blank=True, related_name="history"
    )
    pending_order = models.ForeignKey(
        "orders.PendingOrder", on_delete=models.PROTECT, null=True, blank=True, related_name="history"
    )
    from_status = models.CharField(max_length=20, null=True, blank=True)
    to_status = models.CharField(max_length=20)
    actor_type = models.CharField(max_length=20, choices=ACTOR_CHOICES)
    actor_id = models.CharField(max_length=64, null=True, blank=True)
    reason = models.CharField(max_length=255, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        verbose_name_plural = "order status history"

    def __str__(self):
        return f"{self.from_status} -> {self.to_status} by {self.actor_type}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Status history entries are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Status history entries cannot be deleted")
