import hashlib
import hmac
import json
from unittest.mock import patch

import pytest
from django.urls import reverse

from orders.exceptions import InvoiceGenerationError, OrderValidationError, SignatureVerificationError
from orders.models import Order, OrderStatusHistory, PaymentTransaction, PendingOrder
from orders.services import Actor
from .utils import charge_data, create_pending, signed_event

SECRET = "sk_test_webhook_secret"


@pytest.fixture
def pending(service, customer, product, delivery_address):
    return create_pending(service, customer, delivery_address, [(product, 2)])


@pytest.mark.django_db
def test_charge_success_webhook_creates_exactly_one_order(service, product, pending):
    body, signature = signed_event(SECRET, "charge.success", charge_data(pending))

    assert service.process_webhook(body, signature) == "processed"
    assert service.process_webhook(body, signature) == "already_processed"

    order = Order.objects.get()
    assert order.status == "paid"
    assert order.invoice_number
    assert OrderStatusHistory.objects.filter(order=order).count() == 1
    assert OrderStatusHistory.objects.get(order=order).actor_type == "gateway"
    product.refresh_from_db()
    assert product.quantity == 3


@pytest.mark.django_db
def test_webhook_and_client_poll_produce_one_order(service, gateway, customer, pending):
    gateway.verify_transaction.return_value = charge_data(pending)
    body, signature = signed_event(SECRET, "charge.success", charge_data(pending))

    service.process_webhook(body, signature)
    receipt = service.verify_payment(pending.payment_reference, user=customer)

    order = Order.objects.get()
    assert receipt["order_number"] == order.order_number
    assert OrderStatusHistory.objects.filter(to_status="paid").count() == 1


@pytest.mark.django_db
def test_charge_failed_webhook_releases_stock(service, product, pending):
    body, signature = signed_event(SECRET, "charge.failed", charge_data(pending, status="failed"))

    assert service.process_webhook(body, signature) == "processed"

    product.refresh_from_db()
    assert product.quantity == 5
    pending.refresh_from_db()
    assert pending.status == PendingOrder.Status.FAILED

    # a late success for a failed transaction is a no-op
    body, signature = signed_event(SECRET, "charge.success", charge_data(pending))
    assert service.process_webhook(body, signature) == "already_processed"
    assert not Order.objects.exists()


@pytest.mark.django_db
def test_bad_signature_is_rejected_before_parsing(service, pending):
    body, _ = signed_event(SECRET, "charge.success", charge_data(pending))

    with pytest.raises(SignatureVerificationError):
        service.process_webhook(body, "0" * 128)
    with pytest.raises(SignatureVerificationError):
        service.process_webhook(body, None)

    assert not Order.objects.exists()


@pytest.mark.django_db
def test_unknown_reference_and_other_events_are_ignored(service, pending):
    body, signature = signed_event(SECRET, "charge.success", {"reference": "GROV-1-UNKNOWN", "amount": 100})
    assert service.process_webhook(body, signature) == "unknown_reference"

    body, signature = signed_event(SECRET, "transfer.success", {"reference": pending.payment_reference})
    assert service.process_webhook(body, signature) == "ignored"

    assert PaymentTransaction.objects.get(reference=pending.payment_reference).status == "initialized"


@pytest.mark.django_db
@pytest.mark.parametrize("data", [["not", "an", "object"], "GROV-1-REF", 42])
def test_non_object_event_data_is_malformed(service, pending, data):
    body, signature = signed_event(SECRET, "charge.success", data)

    with pytest.raises(OrderValidationError):
        service.process_webhook(body, signature)

    assert PaymentTransaction.objects.get(reference=pending.payment_reference).status == "initialized"


@pytest.mark.django_db
def test_webhook_after_cancellation_is_a_noop(service, customer, product, pending):
    service.cancel_pending_order(pending.id, Actor.for_user(customer))
    body, signature = signed_event(SECRET, "charge.success", charge_data(pending))

    assert service.process_webhook(body, signature) == "already_processed"
    assert not Order.objects.exists()
    product.refresh_from_db()
    assert product.quantity == 5


# ─── HTTP endpoint ───────────────────────────────────────────────────────────

@pytest.mark.django_db
@patch("orders.payment_views.get_order_service")
def test_webhook_endpoint_applies_signed_event(service_factory, service, api_client, pending):
    service_factory.return_value = service
    body, signature = signed_event(SECRET, "charge.success", charge_data(pending))

    response = api_client.post(
        reverse("paystack-webhook"), data=body, content_type="application/json", HTTP_X_PAYSTACK_SIGNATURE=signature
    )

    assert response.status_code == 200
    assert json.loads(response.content) == {"status": "received"}
    assert Order.objects.filter(payment_reference=pending.payment_reference).exists()


@pytest.mark.django_db
@patch("orders.payment_views.get_order_service")
def test_webhook_endpoint_hides_signature_failures(service_factory, service, api_client, pending):
    service_factory.return_value = service
    body, _ = signed_event(SECRET, "charge.success", charge_data(pending))

    response = api_client.post(
        reverse("paystack-webhook"), data=body, content_type="application/json", HTTP_X_PAYSTACK_SIGNATURE="forged"
    )

    assert response.status_code == 200
    assert json.loads(response.content) == {"status": "received"}
    assert not Order.objects.exists()


@pytest.mark.django_db
@patch("orders.payment_views.get_order_service")
def test_webhook_endpoint_tolerates_malformed_json(service_factory, service, api_client):
    service_factory.return_value = service
    body = b"{not json"
    signature = hmac.new(SECRET.encode(), body, hashlib.sha512).hexdigest()

    response = api_client.post(
        reverse("paystack-webhook"), data=body, content_type="application/json", HTTP_X_PAYSTACK_SIGNATURE=signature
    )

    assert response.status_code == 200
    assert json.loads(response.content) == {"status": "received"}


@pytest.mark.django_db
@patch("orders.payment_views.get_order_service")
def test_webhook_endpoint_acknowledges_non_object_data(service_factory, service, api_client, pending):
    service_factory.return_value = service
    body, signature = signed_event(SECRET, "charge.success", [charge_data(pending)])

    response = api_client.post(
        reverse("paystack-webhook"), data=body, content_type="application/json", HTTP_X_PAYSTACK_SIGNATURE=signature
    )

    assert response.status_code == 200
    assert json.loads(response.content) == {"status": "received"}
    assert not Order.objects.exists()


@pytest.mark.django_db
@patch("orders.payment_views.get_order_service")
def test_webhook_endpoint_acknowledges_promotion_failure(service_factory, service, api_client, product, pending):
    service_factory.return_value = service
    body, signature = signed_event(SECRET, "charge.success", charge_data(pending))

    with patch("orders.services.unique_order_numbers", side_effect=InvoiceGenerationError("numbers exhausted")):
        response = api_client.post(
            reverse("paystack-webhook"),
            data=body,
            content_type="application/json",
            HTTP_X_PAYSTACK_SIGNATURE=signature,
        )

    assert response.status_code == 200
    assert json.loads(response.content) == {"status": "received"}
    assert not Order.objects.exists()
    # left for reconciliation
    pending.refresh_from_db()
    assert pending.status == PendingOrder.Status.AWAITING_PAYMENT
    assert PaymentTransaction.objects.get(reference=pending.payment_reference).status == "initialized"
    product.refresh_from_db()
    assert product.quantity == 3
