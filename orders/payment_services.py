import hashlib
import hmac
import logging
import secrets
import string
import time
from decimal import Decimal, ROUND_HALF_UP

import requests

from .exceptions import GatewayTimeoutError, PaymentGatewayError

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


def to_kobo(amount) -> int:
    """Major currency unit -> gateway minor unit (x100)."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_kobo(kobo) -> Decimal:
    return (Decimal(int(kobo)) / 100).quantize(Decimal("0.01"))


def generate_reference(prefix="GROV") -> str:
    suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(8))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


def check_email_with_default(email):
    return email if email else "customer@grovio.app"


class PaystackGateway:
    """
    Thin client over the Paystack REST API.

    Every call is bounded by ``timeout``; a timeout raises GatewayTimeoutError,
    any other transport failure or ``status: false`` answer raises
    PaymentGatewayError.
    """

    def __init__(self, secret_key, base_url="https://api.paystack.co", timeout=15.0, session=None):
        self.secret_key = secret_key or ""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config):
        return cls(
            secret_key=config.paystack_secret_key,
            base_url=config.paystack_base_url,
            timeout=config.gateway_timeout,
        )

    def _headers(self):
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    def _request(self, method, path, **kwargs):
        if not self.secret_key:
            raise PaymentGatewayError("Paystack is not configured. Set PAYSTACK_SECRET_KEY.")

        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            raise GatewayTimeoutError(f"Paystack {method} {path} timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise PaymentGatewayError(f"Paystack {method} {path} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise PaymentGatewayError(
                f"Paystack {method} {path} returned non-JSON (HTTP {response.status_code})"
            ) from exc

        if response.status_code >= 400 or not body.get("status"):
            raise PaymentGatewayError(
                f"Paystack {method} {path} rejected (HTTP {response.status_code}): {body.get('message')}"
            )
        return body.get("data") or {}

    def initialize_transaction(
        self, *, email, amount, reference, callback_url=None, metadata=None, currency=None, channels=None
    ):
        """
        Start a transaction. ``amount`` is in major units and is sent in kobo.
        Returns ``{"authorization_url", "access_code", "reference"}``.
        """
        payload = {
            "email": check_email_with_default(email),
            "amount": to_kobo(amount),
            "reference": reference,
            "channels": list(channels or ("card", "bank", "ussd", "mobile_money")),
        }
        if callback_url:
            payload["callback_url"] = callback_url
        if metadata:
            payload["metadata"] = metadata
        if currency:
            payload["currency"] = currency

        data = self._request("POST", "/transaction/initialize", json=payload)
        logger.info(f"Paystack transaction initialized: {reference}")
        return {
            "authorization_url": data.get("authorization_url", ""),
            "access_code": data.get("access_code", ""),
            "reference": data.get("reference", reference),
        }

    def verify_transaction(self, reference):
        """Gateway view of a transaction; ``status`` is success/failed/abandoned/ongoing/..."""
        return self._request("GET", f"/transaction/verify/{reference}")

    def verify_signature(self, payload: bytes, signature) -> bool:
        if not self.secret_key or not signature:
            return False
        expected = hmac.new(self.secret_key.encode(), payload, hashlib.sha512).hexdigest()
        return hmac.compare_digest(expected, signature)
