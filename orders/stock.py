import logging

from django.db import transaction
from django.db.models import F

from catalog.models import Product
from .exceptions import InsufficientStockError

logger = logging.getLogger(__name__)


def reserve_stock(lines):
    """
    Take ``{product_id: quantity}`` out of available stock.

    Each line is a conditional decrement (``quantity >= n``), applied in
    product-id order so concurrent reservations lock rows consistently.
    Must run inside a transaction: on the first short line the caller's
    transaction rolls every earlier decrement back.
    """
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("reserve_stock() must run inside transaction.atomic()")

    for product_id in sorted(lines, key=str):
        quantity = lines[product_id]
        updated = Product.objects.filter(pk=product_id, quantity__gte=quantity).update(
            quantity=F("quantity") - quantity
        )
        if not updated:
            available = Product.objects.filter(pk=product_id).values_list("quantity", flat=True).first()
            raise InsufficientStockError(
                f"Insufficient stock for product {product_id}: requested {quantity}, available {available or 0}",
                product_id=product_id,
                available=available or 0,
            )

    Product.objects.filter(pk__in=list(lines), quantity=0).update(in_stock=False)


def release_stock(lines):
    """Put ``{product_id: quantity}`` back into available stock."""
    for product_id in sorted(lines, key=str):
        quantity = int(lines[product_id])
        if quantity <= 0:
            continue
        updated = Product.objects.filter(pk=product_id).update(
            quantity=F("quantity") + quantity, in_stock=True
        )
        if not updated:
            logger.warning(f"Could not restock {quantity} of missing product {product_id}")
