import hashlib
import hmac
import json

from rest_framework_simplejwt.tokens import RefreshToken

from orders.models import PendingOrder
from orders.payment_services import to_kobo


def authenticate(client, user):
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


def charge_data(pending, status="success", **overrides):
    """Gateway transaction data as Paystack reports it (amount in kobo)."""
    data = {
        "id": 302961,
        "status": status,
        "reference": pending.payment_reference,
        "amount": to_kobo(pending.total_amount),
        "currency": pending.currency,
        "channel": "mobile_money",
        "gateway_response": "Approved" if status == "success" else "Declined",
        "paid_at": "2026-03-01T10:15:00.000Z" if status == "success" else None,
        "fees": 150,
    }
    data.update(overrides)
    return data


def signed_event(secret, event, data):
    body = json.dumps({"event": event, "data": data}).encode()
    signature = hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()
    return body, signature


def create_pending(service, user, address, lines):
    """Create a pending order through the lifecycle and return the model."""
    result = service.create_pending_order(
        user,
        [{"product_id": product.id, "quantity": quantity} for product, quantity in lines],
        address,
    )
    return PendingOrder.objects.get(pk=result["pending_order_id"])
