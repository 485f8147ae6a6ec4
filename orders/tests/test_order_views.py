from decimal import Decimal
from unittest.mock import patch

import pytest
from django.urls import reverse

from orders.exceptions import PaymentGatewayError
from orders.models import Order, PendingOrder
from orders.services import Actor
from .utils import authenticate, charge_data, create_pending


@pytest.fixture(autouse=True)
def order_service(service):
    with patch("orders.views.get_order_service", return_value=service):
        yield service


@pytest.fixture
def pending(service, customer, product, delivery_address):
    return create_pending(service, customer, delivery_address, [(product, 2)])


@pytest.fixture
def paid_order(service, pending):
    receipt = service.finalize_payment(pending.payment_reference, charge_data(pending), Actor.gateway())
    return Order.objects.get(pk=receipt["order_id"])


def order_payload(product, quantity=2, **overrides):
    payload = {
        "cart_items": [{"product_id": str(product.id), "quantity": quantity}],
        "delivery_address": {"street": "12 Oxford Street", "city": "Accra", "phone": "+233241234567"},
        "delivery_notes": "Gate is blue",
    }
    payload.update(overrides)
    return payload


# ─── Create ──────────────────────────────────────────────────────────────────

@pytest.mark.django_db
def test_create_requires_authentication(api_client, product):
    response = api_client.post(reverse("order"), order_payload(product), format="json")

    assert response.status_code == 401


@pytest.mark.django_db
def test_create_returns_checkout_details(api_client, customer, product):
    authenticate(api_client, customer)

    response = api_client.post(reverse("order"), order_payload(product), format="json")

    assert response.status_code == 201, response.data
    pending = PendingOrder.objects.get()
    assert response.data["pending_order_id"] == str(pending.id)
    assert response.data["payment_reference"] == pending.payment_reference
    assert response.data["authorization_url"].startswith("https://checkout.paystack.com/")
    assert pending.delivery_notes == "Gate is blue"


@pytest.mark.django_db
def test_create_rejects_malformed_body(api_client, customer, product):
    authenticate(api_client, customer)

    response = api_client.post(reverse("order"), order_payload(product, quantity=0), format="json")

    assert response.status_code == 400
    assert not PendingOrder.objects.exists()


@pytest.mark.django_db
def test_create_reports_insufficient_stock_as_conflict(api_client, customer, product):
    authenticate(api_client, customer)

    response = api_client.post(reverse("order"), order_payload(product, quantity=9), format="json")

    assert response.status_code == 409
    assert response.data["retryable"] is False
    assert "Plantain Chips" in response.data["error"]


@pytest.mark.django_db
def test_create_hides_gateway_details(api_client, customer, product, gateway):
    gateway.initialize_transaction.side_effect = PaymentGatewayError("HTTP 401 Invalid key sk_live_...")
    authenticate(api_client, customer)

    response = api_client.post(reverse("order"), order_payload(product), format="json")

    assert response.status_code == 502
    assert response.data["retryable"] is True
    assert "sk_live" not in response.data["error"]
    product.refresh_from_db()
    assert product.quantity == 5


@pytest.mark.django_db
def test_create_applies_discount_and_credits(api_client, customer, product, gateway):
    authenticate(api_client, customer)

    response = api_client.post(
        reverse("order"), order_payload(product, discount="4.00", credits="1.00"), format="json"
    )

    assert response.status_code == 201, response.data
    pending = PendingOrder.objects.get()
    assert pending.total_amount == Decimal("20.00")
    assert gateway.initialize_transaction.call_args.kwargs["amount"] == Decimal("20.00")


@pytest.mark.django_db
def test_create_rejects_negative_discount_and_free_orders(api_client, customer, product):
    authenticate(api_client, customer)

    response = api_client.post(reverse("order"), order_payload(product, discount="-1.00"), format="json")
    assert response.status_code == 400

    response = api_client.post(reverse("order"), order_payload(product, credits="25.00"), format="json")
    assert response.status_code == 400
    assert response.data["retryable"] is False
    assert not PendingOrder.objects.exists()


# ─── List & detail ───────────────────────────────────────────────────────────

@pytest.mark.django_db
def test_list_shows_only_own_orders(api_client, customer, other_customer, paid_order):
    authenticate(api_client, other_customer)
    response = api_client.get(reverse("order"))
    assert response.status_code == 200
    assert response.data["count"] == 0

    authenticate(api_client, customer)
    response = api_client.get(reverse("order"))
    assert response.data["count"] == 1
    row = response.data["results"][0]
    assert row["order_number"] == paid_order.order_number
    assert row["item_count"] == 1


@pytest.mark.django_db
def test_list_status_filter(api_client, customer, paid_order):
    authenticate(api_client, customer)

    assert api_client.get(reverse("order"), {"status": "paid"}).data["count"] == 1
    assert api_client.get(reverse("order"), {"status": "shipped"}).data["count"] == 0
    assert api_client.get(reverse("order"), {"status": "lost"}).status_code == 400


@pytest.mark.django_db
def test_detail_is_owner_or_admin_only(api_client, customer, other_customer, staff_user, paid_order):
    url = reverse("order-detail", args=[paid_order.id])

    authenticate(api_client, other_customer)
    assert api_client.get(url).status_code == 404

    authenticate(api_client, staff_user)
    assert api_client.get(url).status_code == 200

    authenticate(api_client, customer)
    response = api_client.get(url)
    assert response.status_code == 200
    assert response.data["items"][0]["product_name"] == "Plantain Chips"
    assert response.data["invoice"]["invoice_number"] == paid_order.invoice_number
    assert response.data["history"][0]["to_status"] == "paid"


@pytest.mark.django_db
def test_lookup_by_order_number_is_case_insensitive(api_client, customer, paid_order):
    authenticate(api_client, customer)

    response = api_client.get(reverse("order-by-number", args=[paid_order.order_number.lower()]))

    assert response.status_code == 200
    assert response.data["id"] == str(paid_order.id)


# ─── Payment ─────────────────────────────────────────────────────────────────

@pytest.mark.django_db
def test_verify_payment_returns_receipt(api_client, customer, gateway, pending):
    gateway.verify_transaction.return_value = charge_data(pending)
    authenticate(api_client, customer)

    response = api_client.post(
        reverse("order-verify-payment"), {"reference": pending.payment_reference}, format="json"
    )

    assert response.status_code == 200
    order = Order.objects.get()
    assert response.data["order_number"] == order.order_number
    assert response.data["invoice_number"] == order.invoice_number
    assert response.data["pdf_url"]


@pytest.mark.django_db
def test_verify_payment_still_pending_is_retryable(api_client, customer, pending):
    authenticate(api_client, customer)

    response = api_client.post(
        reverse("order-verify-payment"), {"reference": pending.payment_reference}, format="json"
    )

    assert response.status_code == 409
    assert response.data["retryable"] is True


@pytest.mark.django_db
def test_payment_status_reports_local_and_gateway_state(api_client, customer, pending):
    authenticate(api_client, customer)

    response = api_client.get(reverse("order-payment-status"), {"reference": pending.payment_reference})

    assert response.status_code == 200
    assert response.data["pending_status"] == "awaiting_payment"
    assert response.data["transaction_status"] == "initialized"
    assert response.data["gateway_status"] == "ongoing"
    assert response.data["order_number"] is None


@pytest.mark.django_db
def test_payment_status_requires_reference(api_client, customer):
    authenticate(api_client, customer)

    assert api_client.get(reverse("order-payment-status")).status_code == 400


# ─── Cancellation & status ───────────────────────────────────────────────────

@pytest.mark.django_db
def test_customer_cancels_order(api_client, customer, product, paid_order):
    authenticate(api_client, customer)

    response = api_client.post(reverse("order-cancel", args=[paid_order.id]), {"reason": "too slow"}, format="json")

    assert response.status_code == 200
    assert response.data["status"] == "cancelled"
    product.refresh_from_db()
    assert product.quantity == 5

    response = api_client.post(reverse("order-cancel", args=[paid_order.id]), {}, format="json")
    assert response.status_code == 409


@pytest.mark.django_db
def test_status_update_is_admin_only(api_client, customer, staff_user, paid_order):
    url = reverse("order-status", args=[paid_order.id])

    authenticate(api_client, customer)
    assert api_client.put(url, {"status": "processing"}, format="json").status_code == 403

    authenticate(api_client, staff_user)
    response = api_client.put(url, {"status": "processing"}, format="json")
    assert response.status_code == 200
    assert response.data["status"] == "processing"

    response = api_client.put(url, {"status": "paid"}, format="json")
    assert response.status_code == 409


@pytest.mark.django_db
def test_pending_order_detail_and_cancel(api_client, customer, other_customer, product, pending):
    detail_url = reverse("pending-order-detail", args=[pending.id])
    cancel_url = reverse("pending-order-cancel", args=[pending.id])

    authenticate(api_client, other_customer)
    assert api_client.get(detail_url).status_code == 404
    assert api_client.post(cancel_url).status_code == 404

    authenticate(api_client, customer)
    response = api_client.get(detail_url)
    assert response.status_code == 200
    assert response.data["status"] == "awaiting_payment"

    assert api_client.post(cancel_url).status_code == 200
    product.refresh_from_db()
    assert product.quantity == 5
    assert api_client.post(cancel_url).status_code == 409


@pytest.mark.django_db
def test_stats_for_admins(api_client, customer, staff_user, paid_order, service, delivery_address, product):
    create_pending(service, customer, delivery_address, [(product, 1)])
    url = reverse("order-stats")

    authenticate(api_client, customer)
    assert api_client.get(url).status_code == 403

    authenticate(api_client, staff_user)
    response = api_client.get(url)
    assert response.status_code == 200
    assert response.data["total_orders"] == 1
    assert response.data["by_status"]["paid"] == 1
    assert response.data["awaiting_payment"] == 1
    assert str(response.data["total_revenue"]) == "25.00"
