from .order import Order, OrderItem, OrderStatus, ALLOWED_TRANSITIONS, TERMINAL_STATUSES
from .pending import PendingOrder
from .payment import PaymentTransaction
from .history import OrderStatusHistory
from .invoice import Invoice

__all__ = [
    "Order",
    "OrderItem",
    "OrderStatus",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "PendingOrder",
    "PaymentTransaction",
    "OrderStatusHistory",
    "Invoice",
]
