from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings


@dataclass(frozen=True)
class LifecycleConfig:
    paystack_secret_key: str
    paystack_base_url: str = "https://api.paystack.co"
    gateway_timeout: float = 15.0
    payment_channels: tuple = ("card", "bank", "ussd", "mobile_money")
    frontend_url: str = "http://localhost:3000"
    backend_url: str = "http://localhost:8000"
    currency: str = "GHS"
    pending_order_ttl: timedelta = timedelta(hours=24)
    reconcile_after: timedelta = timedelta(minutes=15)
    reference_prefix: str = "GROV"
    invoice_renderer: str = "orders.invoices.PdfInvoiceRenderer"
    invoice_retry_delay: int = 60

    @classmethod
    def from_settings(cls) -> "LifecycleConfig":
        return cls(
            paystack_secret_key=settings.PAYSTACK_SECRET_KEY,
            paystack_base_url=settings.PAYSTACK_BASE_URL.rstrip("/"),
            gateway_timeout=float(settings.PAYSTACK_TIMEOUT),
            payment_channels=tuple(settings.PAYSTACK_CHANNELS),
            frontend_url=settings.FRONTEND_URL.rstrip("/"),
            backend_url=settings.BACKEND_URL.rstrip("/"),
            currency=settings.ORDER_CURRENCY,
            pending_order_ttl=timedelta(seconds=settings.PENDING_ORDER_TTL),
            reconcile_after=timedelta(seconds=settings.PAYMENT_RECONCILE_AFTER),
            reference_prefix=settings.PAYMENT_REFERENCE_PREFIX,
            invoice_renderer=settings.INVOICE_RENDERER,
            invoice_retry_delay=settings.INVOICE_RETRY_DELAY,
        )

    def callback_url(self, pending_order_id) -> str:
        return f"{self.frontend_url}/payment/callback?pending_order_id={pending_order_id}"

    def invoice_link(self, order_number, invoice_number) -> str:
        return f"{self.frontend_url}/invoice/{order_number}?inv={invoice_number}"
