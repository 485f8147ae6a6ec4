import logging
import secrets
import string
import time
from dataclasses import dataclass
from io import BytesIO

import qrcode
from django.conf import settings
from django.core.files.base import ContentFile
from django.core.mail import EmailMultiAlternatives
from django.db import IntegrityError, transaction
from django.template.loader import render_to_string
from django.utils import timezone
from django.utils.html import escape
from django.utils.module_loading import import_string
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from authflow.storage_backends import InvoiceStorage
from .exceptions import InvoiceGenerationError
from .models import Invoice, Order

logger = logging.getLogger(__name__)

ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


# ─── Numbering ───────────────────────────────────────────────────────────────

def _random_block(length=4):
    return "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(length))


def generate_order_number() -> str:
    """ORD-XXXX-XXXX from A-Z0-9."""
    return f"ORD-{_random_block()}-{_random_block()}"


def generate_invoice_number() -> str:
    """10 digits: last 8 of the millisecond clock + 2 random."""
    timestamp = str(int(time.time() * 1000))[-8:]
    return f"{timestamp}{secrets.randbelow(100):02d}"


def unique_order_numbers(attempts=5):
    """
    A fresh (order_number, invoice_number) pair not yet used by any order.
    The unique indexes remain the final guard.
    """
    for _ in range(attempts):
        order_number = generate_order_number()
        invoice_number = generate_invoice_number()
        taken = Order.objects.filter(order_number=order_number).exists() or Order.objects.filter(
            invoice_number=invoice_number
        ).exists()
        if not taken:
            return order_number, invoice_number
    raise InvoiceGenerationError("Could not allocate a unique order/invoice number")


# ─── Rendering ───────────────────────────────────────────────────────────────

@dataclass
class RenderedInvoice:
    document: bytes
    extension: str = "pdf"
    content_type: str = "application/pdf"
    image: bytes | None = None  # optional preview (png)


class HtmlInvoiceRenderer:
    """Renders the invoice as a standalone HTML document."""
    template_name = "orders/invoice.html"

    def render(self, context) -> RenderedInvoice:
        html = render_to_string(self.template_name, context)
        return RenderedInvoice(document=html.encode("utf-8"), extension="html", content_type="text/html")


class PdfInvoiceRenderer:
    """
    A4 PDF invoice with a verification QR code.
    The QR code is also returned on its own as the PNG preview image.
    """
    page_size = A4
    qr_size = 35 * mm

    def qr_png(self, payload) -> bytes:
        buffer = BytesIO()
        qrcode.make(payload).save(buffer, format="PNG")
        return buffer.getvalue()

    def line_rows(self, context):
        currency = context["currency"]
        rows = [["Item", "Qty", "Unit price", "Total"]]
        for item in context["items"]:
            rows.append([
                item.product_name,
                str(item.quantity),
                f"{currency} {item.unit_price}",
                f"{currency} {item.total_price}",
            ])
        return rows

    def total_rows(self, context):
        currency = context["currency"]
        return [
            ["Subtotal", f"{currency} {context['subtotal']}"],
            ["Discount", f"- {currency} {context['discount']}"],
            ["Credits", f"- {currency} {context['credits']}"],
            ["Total", f"{currency} {context['total_amount']}"],
        ]

    def render(self, context) -> RenderedInvoice:
        styles = getSampleStyleSheet()
        qr_image = self.qr_png(context["qr_payload"])

        billed_to = [context["customer_name"], context["customer_address"], context["customer_phone"],
                     context["customer_email"]]
        date = context["date"]

        story = [
            Paragraph("Invoice", styles["Title"]),
            Paragraph(f"Invoice number: <b>{escape(context['invoice_number'])}</b>", styles["Normal"]),
            Paragraph(f"Order number: <b>{escape(context['order_number'])}</b>", styles["Normal"]),
            Paragraph(f"Date: {date:%d %b %Y}", styles["Normal"]),
            Spacer(1, 6 * mm),
            Paragraph("Billed to", styles["Heading3"]),
            Paragraph("<br/>".join(escape(line) for line in billed_to if line), styles["Normal"]),
            Spacer(1, 6 * mm),
        ]

        lines = Table(self.line_rows(context), colWidths=[85 * mm, 15 * mm, 35 * mm, 35 * mm], repeatRows=1)
        lines.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("LINEBELOW", (0, 0), (-1, 0), 0.5, colors.black),
            ("LINEBELOW", (0, 1), (-1, -1), 0.25, colors.lightgrey),
            ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ]))
        totals = Table(self.total_rows(context), colWidths=[135 * mm, 35 * mm])
        totals.setStyle(TableStyle([
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
            ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
            ("LINEABOVE", (0, -1), (-1, -1), 0.5, colors.black),
        ]))
        story += [
            lines,
            Spacer(1, 4 * mm),
            totals,
            Spacer(1, 10 * mm),
            Image(BytesIO(qr_image), width=self.qr_size, height=self.qr_size),
            Paragraph(f"Verify this invoice: {escape(context['qr_payload'])}", styles["Italic"]),
            Paragraph("Thank you for shopping with us!", styles["Normal"]),
        ]

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.page_size,
            title=f"Invoice {context['invoice_number']}",
            leftMargin=20 * mm,
            rightMargin=20 * mm,
        )
        doc.build(story)
        return RenderedInvoice(document=buffer.getvalue(), image=qr_image)


# ─── Generator ───────────────────────────────────────────────────────────────

class InvoiceGenerator:
    def __init__(self, config, renderer=None, storage=None):
        self.config = config
        self.renderer = renderer or import_string(config.invoice_renderer)()
        self.storage = storage or InvoiceStorage()

    def qr_payload(self, order) -> str:
        return self.config.invoice_link(order.order_number, order.invoice_number)

    def build_context(self, order):
        user = order.user
        address = order.delivery_address or {}
        return {
            "order": order,
            "invoice_number": order.invoice_number,
            "order_number": order.order_number,
            "date": order.paid_at or order.created_at,
            "customer_name": user.display_name,
            "customer_email": user.email,
            "customer_phone": address.get("phone") or user.phone_number or "",
            "customer_address": ", ".join(
                str(address[key]) for key in ("street", "city", "region") if address.get(key)
            ),
            "items": list(order.items.all()),
            "subtotal": order.subtotal,
            "discount": order.discount,
            "credits": order.credits,
            "total_amount": order.total_amount,
            "currency": order.currency,
            "qr_payload": self.qr_payload(order),
        }

    def _store(self, name, content) -> str:
        if self.storage.exists(name):
            self.storage.delete(name)
        saved = self.storage.save(name, ContentFile(content))
        url = self.storage.url(saved)
        if url.startswith("http://") or url.startswith("https://"):
            return url
        return f"{self.config.backend_url}{url}"

    def issue(self, order) -> Invoice:
        """
        Render, store and record the invoice for a paid order.
        Returns the existing invoice when one was already issued.
        """
        existing = Invoice.objects.filter(order=order).first()
        if existing:
            return existing

        try:
            rendered = self.renderer.render(self.build_context(order))
            pdf_url = self._store(f"{order.invoice_number}.{rendered.extension}", rendered.document)
            image_url = ""
            if rendered.image:
                image_url = self._store(f"{order.invoice_number}.png", rendered.image)
        except InvoiceGenerationError:
            raise
        except Exception as exc:
            raise InvoiceGenerationError(f"Failed to generate invoice for order {order.order_number}: {exc}") from exc

        try:
            with transaction.atomic():
                invoice = Invoice.objects.create(
                    order=order,
                    invoice_number=order.invoice_number,
                    pdf_url=pdf_url,
                    image_url=image_url,
                    qr_payload=self.qr_payload(order),
                )
        except IntegrityError:
            # a concurrent issue() won
            return Invoice.objects.get(order=order)

        logger.info(f"Invoice {invoice.invoice_number} issued for order {order.order_number}")
        return invoice


# ─── Email ───────────────────────────────────────────────────────────────────

def send_invoice_email(invoice) -> bool:
    """Mail the invoice link to the buyer. Returns False when there is no recipient."""
    order = invoice.order
    email = order.user.email
    if not email:
        return False

    support_email = getattr(settings, "SUPPORT_EMAIL", settings.DEFAULT_FROM_EMAIL)
    text_body = (
        f"Hi {order.user.display_name},\n\n"
        f"Thanks for your order {order.order_number}.\n"
        f"Amount paid: {order.currency} {order.total_amount}\n\n"
        f"Your invoice ({invoice.invoice_number}) is available here:\n{invoice.pdf_url}\n\n"
        f"Help: {support_email}\n"
    )
    html_body = render_to_string("orders/invoice_email.html", {"order": order, "invoice": invoice})

    msg = EmailMultiAlternatives(
        subject=f"Your invoice for order {order.order_number}",
        body=text_body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[email],
    )
    msg.attach_alternative(html_body, "text/html")
    msg.send(fail_silently=False)

    Invoice.objects.filter(pk=invoice.pk).update(emailed_at=timezone.now())
    return True
