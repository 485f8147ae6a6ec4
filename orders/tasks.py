"""
Celery tasks for pending-order expiry, payment reconciliation and invoices.
"""
import logging
import smtplib

from celery import shared_task

from .exceptions import InvoiceGenerationError
from .invoices import send_invoice_email
from .models import Invoice, Order
from .services import get_order_service

logger = logging.getLogger(__name__)


# ===== PERIODIC TASKS =====

@shared_task(name='orders.sweep_expired_pending_orders')
def sweep_expired_pending_orders():
    """
    Expire pending orders whose payment window has passed and restock them.
    Runs from CELERY_BEAT_SCHEDULE.
    """
    expired = get_order_service().expire_pending_orders()
    return f"Expired {expired} pending order(s)"


@shared_task(name='orders.reconcile_pending_payments')
def reconcile_pending_payments():
    """
    Re-verify stale awaiting payments (lost webhooks) and issue any invoices
    that are still missing for paid orders.
    """
    service = get_order_service()
    summary = service.reconcile_pending_payments()
    summary["invoices_issued"] = service.reissue_missing_invoices()
    logger.info(f"Payment reconciliation: {summary}")
    return summary


# ===== INVOICES =====

@shared_task(bind=True, name='orders.generate_order_invoice', max_retries=5)
def generate_order_invoice(self, order_id):
    """
    Retry invoice generation for a paid order. The payment is already
    durable, so a failure here only delays the invoice.
    """
    try:
        order = Order.objects.select_related('user').get(id=order_id)
    except Order.DoesNotExist:
        logger.error(f"Order {order_id} not found for invoice generation")
        return None

    service = get_order_service()
    try:
        invoice = service.issue_invoice(order)
    except InvoiceGenerationError as exc:
        logger.warning(f"Invoice retry {self.request.retries + 1} failed for order {order.order_number}: {exc}")
        raise self.retry(exc=exc, countdown=service.config.invoice_retry_delay * (self.request.retries + 1))

    return invoice.invoice_number


@shared_task(name='orders.send_invoice_email')
def send_invoice_email_task(invoice_id):
    try:
        invoice = Invoice.objects.select_related('order__user').get(pk=invoice_id)
    except Invoice.DoesNotExist:
        logger.error(f"Invoice {invoice_id} not found for email")
        return None

    try:
        sent = send_invoice_email(invoice)
    except (smtplib.SMTPException, OSError):
        logger.exception(f"Failed to email invoice {invoice.invoice_number}")
        return False
    return sent
