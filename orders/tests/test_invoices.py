import re
from unittest.mock import Mock, patch

import pytest
from django.core import mail

from orders.exceptions import InvoiceGenerationError
from orders.invoices import (
    HtmlInvoiceRenderer,
    InvoiceGenerator,
    PdfInvoiceRenderer,
    RenderedInvoice,
    generate_invoice_number,
    generate_order_number,
    send_invoice_email,
    unique_order_numbers,
)
from orders.models import Invoice, Order
from orders.services import Actor
from orders.tasks import generate_order_invoice
from .utils import charge_data, create_pending


@pytest.fixture
def paid_order(service, customer, product, delivery_address):
    pending = create_pending(service, customer, delivery_address, [(product, 2)])
    receipt = service.finalize_payment(pending.payment_reference, charge_data(pending), Actor.gateway())
    return Order.objects.get(pk=receipt["order_id"])


def test_order_number_format():
    for _ in range(50):
        assert re.fullmatch(r"ORD-[A-Z0-9]{4}-[A-Z0-9]{4}", generate_order_number())


def test_invoice_number_is_ten_digits():
    for _ in range(50):
        assert re.fullmatch(r"\d{10}", generate_invoice_number())


@pytest.mark.django_db
def test_unique_order_numbers_gives_up_after_repeated_collisions(paid_order):
    with patch("orders.invoices.generate_order_number", return_value=paid_order.order_number):
        with pytest.raises(InvoiceGenerationError):
            unique_order_numbers(attempts=3)


@pytest.mark.django_db
def test_invoice_is_stored_and_linked(paid_order):
    invoice = paid_order.invoice

    assert invoice.invoice_number == paid_order.invoice_number
    assert invoice.pdf_url == f"https://api.example.com/media/invoices/{paid_order.invoice_number}.pdf"
    assert invoice.image_url == f"https://api.example.com/media/invoices/{paid_order.invoice_number}.png"
    assert invoice.qr_payload == (
        f"https://shop.example.com/invoice/{paid_order.order_number}?inv={paid_order.invoice_number}"
    )


@pytest.mark.django_db
def test_default_renderer_produces_pdf_and_qr_png(lifecycle_config, paid_order):
    generator = InvoiceGenerator(lifecycle_config)
    assert isinstance(generator.renderer, PdfInvoiceRenderer)

    rendered = generator.renderer.render(generator.build_context(paid_order))

    assert rendered.document.startswith(b"%PDF")
    assert rendered.extension == "pdf"
    assert rendered.content_type == "application/pdf"
    assert rendered.image.startswith(b"\x89PNG")


@pytest.mark.django_db
def test_pdf_rows_list_order_lines_and_adjustments(lifecycle_config, paid_order):
    context = InvoiceGenerator(lifecycle_config).build_context(paid_order)
    renderer = PdfInvoiceRenderer()

    assert renderer.line_rows(context)[1] == ["Plantain Chips", "2", "GHS 12.50", "GHS 25.00"]
    assert renderer.total_rows(context) == [
        ["Subtotal", "GHS 25.00"],
        ["Discount", "- GHS 0.00"],
        ["Credits", "- GHS 0.00"],
        ["Total", "GHS 25.00"],
    ]


@pytest.mark.django_db
def test_html_renderer_lists_order_lines(lifecycle_config, paid_order):
    context = InvoiceGenerator(lifecycle_config).build_context(paid_order)

    rendered = HtmlInvoiceRenderer().render(context)

    html = rendered.document.decode()
    assert rendered.extension == "html"
    assert paid_order.invoice_number in html
    assert paid_order.order_number in html
    assert "Plantain Chips" in html
    assert "25.00" in html
    assert "Discount" in html


@pytest.mark.django_db
def test_issue_is_idempotent(lifecycle_config, paid_order):
    renderer = Mock()
    generator = InvoiceGenerator(lifecycle_config, renderer=renderer)

    assert generator.issue(paid_order) == paid_order.invoice
    renderer.render.assert_not_called()
    assert Invoice.objects.filter(order=paid_order).count() == 1


@pytest.mark.django_db
def test_custom_renderer_can_attach_a_preview_image(lifecycle_config, paid_order):
    Invoice.objects.filter(order=paid_order).delete()
    renderer = Mock()
    renderer.render.return_value = RenderedInvoice(document=b"%PDF-1.4", image=b"\x89PNG")

    invoice = InvoiceGenerator(lifecycle_config, renderer=renderer).issue(paid_order)

    assert invoice.pdf_url.endswith(f"{paid_order.invoice_number}.pdf")
    assert invoice.image_url.endswith(f"{paid_order.invoice_number}.png")


@pytest.mark.django_db
def test_renderer_failure_is_wrapped(lifecycle_config, paid_order):
    Invoice.objects.filter(order=paid_order).delete()
    renderer = Mock()
    renderer.render.side_effect = RuntimeError("font missing")

    with pytest.raises(InvoiceGenerationError, match="font missing"):
        InvoiceGenerator(lifecycle_config, renderer=renderer).issue(paid_order)

    assert not Invoice.objects.filter(order=paid_order).exists()


@pytest.mark.django_db
def test_invoice_email_links_the_invoice(customer, paid_order):
    mail.outbox.clear()

    assert send_invoice_email(paid_order.invoice) is True

    message = mail.outbox[0]
    assert message.to == [customer.email]
    assert paid_order.order_number in message.subject
    assert paid_order.invoice.pdf_url in message.body
    assert message.alternatives[0][1] == "text/html"


@pytest.mark.django_db
def test_invoice_retry_task_issues_missing_invoice(service, paid_order):
    Invoice.objects.filter(order=paid_order).delete()

    with patch("orders.tasks.get_order_service", return_value=service):
        result = generate_order_invoice.delay(str(paid_order.pk)).get()

    assert result == paid_order.invoice_number
    assert Invoice.objects.filter(order=paid_order).count() == 1
