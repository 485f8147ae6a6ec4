"""
Error kinds raised by the order lifecycle.

Every class carries the HTTP status the API answers with and whether the
caller may safely retry the same request later.
"""

# ─── Base ────────────────────────────────────────────────────────────────────

class OrderError(Exception):
    """Base class for all order errors. Always safe to catch at the top level."""
    status_code = 400
    retryable = False


# ─── Request / lookup ────────────────────────────────────────────────────────

class OrderValidationError(OrderError):
    """Malformed cart, unknown product, bad quantity or unknown status value."""


class InsufficientStockError(OrderValidationError):
    """Requested quantity exceeds available stock."""
    status_code = 409

    def __init__(self, message, product_id=None, available=None):
        super().__init__(message)
        self.product_id = product_id
        self.available = available


class NotFoundError(OrderError):
    """Unknown id/reference, or one the caller does not own."""
    status_code = 404


# ─── Payment ─────────────────────────────────────────────────────────────────

class PaymentGatewayError(OrderError):
    """The gateway failed, answered garbage, or refused the call."""
    status_code = 503
    retryable = True


class GatewayTimeoutError(PaymentGatewayError):
    """The gateway did not answer within the configured timeout."""


class PaymentInitError(PaymentGatewayError):
    """Payment could not be initialized; the reservation was rolled back."""
    status_code = 502


class PaymentPendingError(OrderError):
    """The gateway has not settled the payment yet."""
    status_code = 409
    retryable = True


class PaymentFailedError(OrderError):
    """The gateway reported the charge as failed or abandoned."""
    status_code = 402


class SignatureVerificationError(OrderError):
    """Webhook body does not match its HMAC signature."""
    status_code = 400


# ─── State ───────────────────────────────────────────────────────────────────

class OrderStateError(OrderError):
    status_code = 409


class InvalidStateError(OrderStateError):
    """Operation not allowed in the entity's current state."""


class InvalidTransitionError(OrderStateError):
    """Requested status change is not an edge of the status graph."""


# ─── Invoices ────────────────────────────────────────────────────────────────

class InvoiceGenerationError(OrderError):
    """Rendering or storing an invoice failed. Never undoes a payment."""
    status_code = 500
    retryable = True
