from django.db import models


class Invoice(models.Model):
    order = models.OneToOneField("orders.Order", on_delete=models.PROTECT, related_name="invoice")
    invoice_number = models.CharField(max_length=10, unique=True)
    pdf_url = models.URLField(max_length=500)
    image_url = models.URLField(max_length=500, blank=True)
    qr_payload = models.CharField(max_length=500)
    emailed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "invoices"
        ordering = ["-created_at"]

    def __str__(self):
        return self.invoice_number
