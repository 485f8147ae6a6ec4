"""
Order/payment lifecycle.

pending order -> payment init -> verification (client poll or webhook)
-> promotion to Order -> invoice -> fulfilment status changes.

Both verification paths funnel into ``finalize_payment``, which is the only
place an Order is created. The unique ``Order.payment_reference`` index is the
final guard against a duplicate promotion.
"""
import json
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Sum
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from kombu.exceptions import OperationalError

from catalog.models import Product
from .config import LifecycleConfig
from .exceptions import (
    InsufficientStockError,
    InvalidStateError,
    InvalidTransitionError,
    InvoiceGenerationError,
    NotFoundError,
    OrderStateError,
    OrderValidationError,
    PaymentFailedError,
    PaymentGatewayError,
    PaymentInitError,
    PaymentPendingError,
    SignatureVerificationError,
)
from .invoices import InvoiceGenerator, unique_order_numbers
from .models import (
    Invoice,
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusHistory,
    PaymentTransaction,
    PendingOrder,
)
from .payment_services import PaystackGateway, from_kobo, generate_reference, to_kobo
from .stock import release_stock, reserve_stock

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
REQUIRED_ADDRESS_FIELDS = ("street", "city", "phone")

# gateway statuses that end a payment attempt; "abandoned" is what Paystack
# reports for a checkout the customer has not completed yet
GATEWAY_FAILED_STATUSES = frozenset({"failed", "reversed"})


@dataclass(frozen=True)
class Actor:
    type: str
    id: str | None = None

    @classmethod
    def for_user(cls, user):
        role = "admin" if getattr(user, "is_order_admin", False) else "customer"
        return cls(role, str(user.pk))

    @classmethod
    def system(cls):
        return cls("system")

    @classmethod
    def gateway(cls):
        return cls("gateway")

    @property
    def is_admin(self):
        return self.type in ("admin", "system")

    def owns(self, obj):
        return self.is_admin or str(obj.user_id) == self.id


def record_history(*, to_status, actor, from_status=None, order=None, pending_order=None, reason="", metadata=None):
    return OrderStatusHistory.objects.create(
        order=order,
        pending_order=pending_order,
        from_status=from_status,
        to_status=to_status,
        actor_type=actor.type,
        actor_id=actor.id,
        reason=reason,
        metadata=metadata or {},
    )


def _parse_paid_at(gateway_data):
    value = (gateway_data or {}).get("paid_at") or (gateway_data or {}).get("paidAt")
    if not value:
        return None
    try:
        return parse_datetime(value)
    except ValueError:
        return None


class OrderLifecycleService:
    def __init__(self, config: LifecycleConfig, gateway: PaystackGateway, invoices: InvoiceGenerator):
        self.config = config
        self.gateway = gateway
        self.invoices = invoices

    # ─── Creation ────────────────────────────────────────────────────────────

    def create_pending_order(self, user, cart_items, delivery_address, delivery_notes="", discount=0, credits=0):
        """
        Reserve stock for the cart, persist a PendingOrder and an initialized
        PaymentTransaction, then ask the gateway for a checkout URL.
        The amount charged is the subtotal less any discount and credits.
        """
        lines = self._normalize_cart(cart_items)
        self._validate_address(delivery_address)
        discount = self._adjustment(discount, "Discount")
        credits = self._adjustment(credits, "Credits")
        reference = generate_reference(self.config.reference_prefix)
        actor = Actor.for_user(user)

        with transaction.atomic():
            products = Product.objects.in_bulk(list(lines))
            unavailable = [str(pid) for pid in lines if pid not in products or not products[pid].is_active]
            if unavailable:
                raise OrderValidationError(f"Unknown or unavailable product(s): {', '.join(unavailable)}")

            for product_id, quantity in lines.items():
                product = products[product_id]
                if quantity > product.quantity:
                    raise InsufficientStockError(
                        f"Only {product.quantity} of {product.name} in stock",
                        product_id=str(product_id),
                        available=product.quantity,
                    )

            snapshot, subtotal = self._snapshot(products, lines)
            total = subtotal - discount - credits
            if total <= 0:
                raise OrderValidationError("Order total must be greater than zero")

            reserve_stock(lines)

            pending = PendingOrder.objects.create(
                user=user,
                cart_items=snapshot,
                subtotal=subtotal,
                discount=discount,
                credits=credits,
                total_amount=total,
                currency=self.config.currency,
                delivery_address=dict(delivery_address),
                delivery_notes=delivery_notes or "",
                payment_reference=reference,
                expires_at=timezone.now() + self.config.pending_order_ttl,
            )
            PaymentTransaction.objects.create(
                reference=reference,
                pending_order=pending,
                user=user,
                amount=total,
                currency=self.config.currency,
            )
            record_history(
                pending_order=pending,
                to_status=OrderStatus.PENDING_PAYMENT,
                actor=actor,
                reason="created",
                metadata={"reference": reference},
            )

        try:
            init = self.gateway.initialize_transaction(
                email=user.email,
                amount=total,
                reference=reference,
                callback_url=self.config.callback_url(pending.id),
                metadata={
                    "pending_order_id": str(pending.id),
                    "user_id": str(user.pk),
                    "user_email": user.email,
                    "user_name": user.display_name,
                },
                currency=self.config.currency,
                channels=self.config.payment_channels,
            )
        except PaymentGatewayError as exc:
            logger.exception(f"Payment initialization failed for {reference} (pending order {pending.id})")
            self._abort_pending(
                pending.pk,
                PendingOrder.Status.FAILED,
                Actor.system(),
                reason="payment_init_failed",
                gateway_data={"gateway_response": str(exc)[:255]},
            )
            raise PaymentInitError("Could not start payment. Please try again.") from exc

        PendingOrder.objects.filter(pk=pending.pk).update(
            payment_access_code=init["access_code"],
            authorization_url=init["authorization_url"],
        )
        PaymentTransaction.objects.filter(reference=reference).update(access_code=init["access_code"])

        logger.info(f"Pending order {pending.id} created for user {user.pk}: {reference} ({total})")
        return {
            "pending_order_id": str(pending.id),
            "payment_reference": reference,
            "authorization_url": init["authorization_url"],
            "access_code": init["access_code"],
            "amount": total,
            "currency": self.config.currency,
            "expires_at": pending.expires_at,
        }

    def _normalize_cart(self, cart_items):
        if not cart_items:
            raise OrderValidationError("Cart is empty")

        lines = {}
        for item in cart_items:
            raw_id = item.get("product_id")
            quantity = item.get("quantity")
            try:
                product_id = raw_id if isinstance(raw_id, uuid.UUID) else uuid.UUID(str(raw_id))
            except ValueError as exc:
                raise OrderValidationError(f"Invalid product id: {raw_id}") from exc
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise OrderValidationError(f"Quantity for product {product_id} must be a positive integer")
            lines[product_id] = lines.get(product_id, 0) + quantity
        return lines

    def _validate_address(self, address):
        if not isinstance(address, dict):
            raise OrderValidationError("Delivery address is required")
        missing = [key for key in REQUIRED_ADDRESS_FIELDS if not str(address.get(key) or "").strip()]
        if missing:
            raise OrderValidationError(f"Delivery address is missing: {', '.join(missing)}")

    def _adjustment(self, value, label):
        try:
            amount = Decimal(str(value or 0)).quantize(TWO_PLACES)
        except ArithmeticError as exc:
            raise OrderValidationError(f"{label} must be a number") from exc
        if not amount.is_finite() or amount < 0:
            raise OrderValidationError(f"{label} must be zero or more")
        return amount

    def _snapshot(self, products, lines):
        snapshot = []
        subtotal = Decimal("0")
        for product_id, quantity in lines.items():
            product = products[product_id]
            line_total = (product.price * quantity).quantize(TWO_PLACES)
            subtotal += line_total
            snapshot.append({
                "product_id": str(product_id),
                "name": product.name,
                "description": product.description,
                "price": str(product.price),
                "quantity": quantity,
                "total": str(line_total),
                "category": product.category_name,
                "image": product.image_url,
            })
        return snapshot, subtotal.quantize(TWO_PLACES)

    # ─── Verification & promotion ────────────────────────────────────────────

    def verify_payment(self, reference, user=None):
        """
        Client-driven verification. Idempotent: a reference that was already
        promoted returns the same receipt without calling the gateway.
        """
        pending = self._get_pending_by_reference(reference, user)
        if pending.status == PendingOrder.Status.CONVERTED and pending.order_id:
            return self.receipt(pending.order)
        if pending.status != PendingOrder.Status.AWAITING_PAYMENT:
            raise NotFoundError(f"No payable order for reference {reference}")

        actor = Actor.for_user(user) if user is not None else Actor.system()
        try:
            data = self.gateway.verify_transaction(reference)
        except PaymentGatewayError:
            logger.exception(f"Gateway verification failed for {reference}; state left untouched")
            raise

        gateway_status = str(data.get("status") or "").lower()
        if gateway_status == "success":
            return self.finalize_payment(reference, data, actor)
        if gateway_status in GATEWAY_FAILED_STATUSES:
            self.fail_payment(reference, data, actor)
            raise PaymentFailedError(data.get("gateway_response") or "Payment failed")

        raise PaymentPendingError(f"Payment {reference} is not complete yet ({gateway_status or 'pending'})")

    def finalize_payment(self, reference, gateway_data, actor):
        """
        Promote the pending order behind ``reference`` to a paid Order.
        Safe to call concurrently and repeatedly; every caller gets the same receipt.
        """
        gateway_data = gateway_data or {}
        amount_mismatch = False
        order = None

        try:
            with transaction.atomic():
                pending = (
                    PendingOrder.objects.select_for_update()
                    .filter(payment_reference=reference)
                    .first()
                )
                if pending is None:
                    raise NotFoundError(f"No order found for reference {reference}")

                if pending.status == PendingOrder.Status.CONVERTED:
                    existing = pending.order or Order.objects.get(payment_reference=reference)
                    return self.receipt(existing)
                if pending.status != PendingOrder.Status.AWAITING_PAYMENT:
                    logger.error(
                        f"Payment {reference} succeeded but pending order {pending.id} is {pending.status}; "
                        f"manual refund required"
                    )
                    raise InvalidStateError(f"Pending order for {reference} is {pending.status}")

                paid_kobo = gateway_data.get("amount")
                if paid_kobo is not None and int(paid_kobo) != to_kobo(pending.total_amount):
                    amount_mismatch = True
                else:
                    order = self._promote(pending, gateway_data, actor)
        except IntegrityError:
            existing = Order.objects.filter(payment_reference=reference).first()
            if existing is None:
                raise
            logger.info(f"Concurrent promotion for {reference} already created order {existing.order_number}")
            return self.receipt(existing)

        if amount_mismatch:
            logger.error(
                f"Amount mismatch for {reference}: gateway {gateway_data.get('amount')} kobo, "
                f"expected {to_kobo(pending.total_amount)}"
            )
            self.fail_payment(reference, {**gateway_data, "gateway_response": "amount_mismatch"}, actor)
            raise PaymentFailedError("Paid amount does not match the order total")

        self._issue_invoice_safely(order)
        return self.receipt(order)

    def _promote(self, pending, gateway_data, actor):
        now = timezone.now()
        order_number, invoice_number = unique_order_numbers()
        order = Order.objects.create(
            order_number=order_number,
            invoice_number=invoice_number,
            user_id=pending.user_id,
            status=OrderStatus.PAID,
            subtotal=pending.subtotal,
            discount=pending.discount,
            credits=pending.credits,
            total_amount=pending.total_amount,
            currency=pending.currency,
            payment_reference=pending.payment_reference,
            paid_at=_parse_paid_at(gateway_data) or now,
            delivery_address=pending.delivery_address,
            delivery_notes=pending.delivery_notes,
            metadata={"pending_order_id": str(pending.id), "channel": gateway_data.get("channel") or ""},
        )
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product_id=item["product_id"],
                product_name=item["name"],
                product_description=item.get("description") or "",
                product_image=item.get("image") or "",
                category_name=item.get("category") or "",
                unit_price=Decimal(item["price"]),
                quantity=int(item["quantity"]),
                total_price=Decimal(item["total"]),
            )
            for item in pending.cart_items
        ])

        self._close_transaction(pending.payment_reference, PaymentTransaction.Status.SUCCESS, gateway_data, order=order)

        pending.status = PendingOrder.Status.CONVERTED
        pending.order = order
        pending.converted_at = now
        pending.save(update_fields=["status", "order", "converted_at", "updated_at"])

        record_history(
            order=order,
            pending_order=pending,
            from_status=OrderStatus.PENDING_PAYMENT,
            to_status=OrderStatus.PAID,
            actor=actor,
            reason="payment_verified",
            metadata={
                "reference": pending.payment_reference,
                "amount": gateway_data.get("amount"),
                "channel": gateway_data.get("channel"),
            },
        )
        logger.info(f"Order {order.order_number} created from {pending.payment_reference}")
        return order

    def fail_payment(self, reference, gateway_data, actor):
        """Mark the payment failed and release the reservation. Returns False if nothing changed."""
        pending = PendingOrder.objects.filter(payment_reference=reference).only("pk").first()
        if pending is None:
            raise NotFoundError(f"No order found for reference {reference}")
        changed = self._abort_pending(
            pending.pk, PendingOrder.Status.FAILED, actor, reason="payment_failed", gateway_data=gateway_data
        )
        if changed:
            logger.warning(f"Payment failed: {reference}")
        return changed

    # ─── Webhook ─────────────────────────────────────────────────────────────

    def process_webhook(self, raw_body: bytes, signature):
        """Authenticate a raw gateway delivery, then dispatch it."""
        if not self.gateway.verify_signature(raw_body, signature):
            raise SignatureVerificationError("Invalid Paystack webhook signature")
        try:
            event = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise OrderValidationError("Malformed webhook payload") from exc
        if not isinstance(event, dict):
            raise OrderValidationError("Malformed webhook payload")
        data = event.get("data") or {}
        if not isinstance(data, dict):
            raise OrderValidationError("Malformed webhook payload: data must be an object")
        return self.handle_webhook(event.get("event"), data)

    def handle_webhook(self, event_type, data):
        """
        charge.success / charge.failed for a known, non-terminal transaction.
        Everything else is logged and ignored. Returns a short outcome label.
        """
        if event_type not in ("charge.success", "charge.failed"):
            logger.info(f"Received unhandled webhook event: {event_type}")
            return "ignored"

        reference = data.get("reference")
        if not reference:
            logger.warning(f"Webhook {event_type} without a reference")
            return "ignored"

        txn = PaymentTransaction.objects.filter(reference=reference).first()
        if txn is None:
            logger.warning(f"Webhook {event_type} for unknown reference {reference}")
            return "unknown_reference"
        if txn.is_terminal:
            logger.info(f"Webhook {event_type} for {reference} already processed ({txn.status})")
            return "already_processed"

        logger.info(f"Payment webhook received: {event_type} {reference}")
        try:
            if event_type == "charge.success":
                self.finalize_payment(reference, data, Actor.gateway())
            else:
                self.fail_payment(reference, data, Actor.gateway())
        except (OrderStateError, PaymentFailedError) as exc:
            logger.warning(f"Webhook {event_type} for {reference} not applied: {exc}")
            return "rejected"
        return "processed"

    # ─── Cancellation & status changes ───────────────────────────────────────

    def cancel_pending_order(self, pending_order_id, actor):
        pending = PendingOrder.objects.filter(pk=pending_order_id).first()
        if pending is None or not actor.owns(pending):
            raise NotFoundError("Pending order not found")

        changed = self._abort_pending(pending.pk, PendingOrder.Status.CANCELLED, actor, reason="cancelled")
        if not changed:
            pending.refresh_from_db(fields=["status"])
            raise InvalidStateError(f"Pending order is already {pending.status}")
        logger.info(f"Pending order {pending.id} cancelled by {actor.type}")

    def cancel_order(self, order_id, actor, reason=""):
        with transaction.atomic():
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None or not actor.owns(order):
                raise NotFoundError("Order not found")
            if order.is_terminal:
                raise InvalidStateError(f"Order {order.order_number} is already {order.status}")
            self._apply_transition(order, OrderStatus.CANCELLED, actor, reason or f"cancelled by {actor.type}")

        logger.info(f"Order {order.order_number} cancelled by {actor.type}")
        return order

    def update_order_status(self, order_id, new_status, actor, reason=""):
        if new_status not in OrderStatus.values:
            raise OrderValidationError(f"Unknown order status: {new_status}")

        with transaction.atomic():
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                raise NotFoundError("Order not found")
            if not order.can_transition_to(new_status):
                raise InvalidTransitionError(f"Cannot move order from {order.status} to {new_status}")
            old_status = order.status
            self._apply_transition(order, new_status, actor, reason)

        logger.info(f"Order {order.order_number}: {old_status} -> {new_status} by {actor.type}")
        return order

    def _apply_transition(self, order, new_status, actor, reason=""):
        old_status = order.status
        updated = Order.objects.filter(pk=order.pk, status=old_status).update(
            status=new_status, updated_at=timezone.now()
        )
        if not updated:
            raise InvalidTransitionError(f"Order {order.order_number} changed concurrently; retry")
        order.status = new_status

        record_history(order=order, from_status=old_status, to_status=new_status, actor=actor, reason=reason)

        if new_status == OrderStatus.CANCELLED:
            lines = {}
            for item in order.items.all():
                lines[item.product_id] = lines.get(item.product_id, 0) + item.quantity
            release_stock(lines)

    def _abort_pending(self, pending_id, to_status, actor, reason, gateway_data=None, expired_before=None):
        """
        Move an awaiting pending order to a dead state, fail its transaction
        and give its stock back. Returns False if it was no longer awaiting.
        """
        with transaction.atomic():
            pending = PendingOrder.objects.select_for_update().filter(pk=pending_id).first()
            if pending is None or pending.status != PendingOrder.Status.AWAITING_PAYMENT:
                return False
            if expired_before is not None and pending.expires_at > expired_before:
                return False

            release_stock(pending.reserved_lines)
            pending.status = to_status
            pending.save(update_fields=["status", "updated_at"])
            self._close_transaction(pending.payment_reference, PaymentTransaction.Status.FAILED, gateway_data)

            record_history(
                pending_order=pending,
                from_status=OrderStatus.PENDING_PAYMENT,
                to_status=to_status,
                actor=actor,
                reason=reason,
                metadata={"reference": pending.payment_reference},
            )
        return True

    def _close_transaction(self, reference, status, gateway_data=None, order=None):
        """initialized -> success|failed, exactly once."""
        gateway_data = gateway_data or {}
        fields = {"status": status, "updated_at": timezone.now()}
        if gateway_data:
            fields["raw_payload"] = gateway_data
            fields["channel"] = str(gateway_data.get("channel") or "")[:50]
            fields["gateway_response"] = str(gateway_data.get("gateway_response") or "")[:255]
            if gateway_data.get("fees") is not None:
                fields["fees"] = from_kobo(gateway_data["fees"])
        if status == PaymentTransaction.Status.SUCCESS:
            fields["paid_at"] = _parse_paid_at(gateway_data) or timezone.now()
        if order is not None:
            fields["order"] = order
        return PaymentTransaction.objects.filter(
            reference=reference, status=PaymentTransaction.Status.INITIALIZED
        ).update(**fields) == 1

    # ─── Background ──────────────────────────────────────────────────────────

    def expire_pending_orders(self, now=None):
        """TTL sweep: expire awaiting pending orders past ``expires_at`` and restock."""
        now = now or timezone.now()
        candidates = PendingOrder.objects.filter(
            status=PendingOrder.Status.AWAITING_PAYMENT, expires_at__lte=now
        ).values_list("pk", flat=True)

        expired = 0
        for pending_id in list(candidates):
            if self._abort_pending(
                pending_id,
                PendingOrder.Status.EXPIRED,
                Actor.system(),
                reason="expired",
                gateway_data={"gateway_response": "abandoned"},
                expired_before=now,
            ):
                expired += 1

        if expired:
            logger.info(f"Expired {expired} pending order(s)")
        return expired

    def reconcile_pending_payments(self, now=None):
        """
        Re-verify awaiting payments older than ``reconcile_after`` in case a
        webhook was lost. Gateway trouble is logged and left for the next run.
        """
        now = now or timezone.now()
        stale = PendingOrder.objects.filter(
            status=PendingOrder.Status.AWAITING_PAYMENT,
            created_at__lte=now - self.config.reconcile_after,
            expires_at__gt=now,
        ).values_list("payment_reference", flat=True)

        summary = {"converted": 0, "failed": 0, "pending": 0, "errors": 0}
        for reference in list(stale):
            try:
                self.verify_payment(reference)
                summary["converted"] += 1
            except PaymentPendingError:
                summary["pending"] += 1
            except PaymentFailedError:
                summary["failed"] += 1
            except PaymentGatewayError as exc:
                logger.warning(f"Reconcile of {reference} deferred: {exc}")
                summary["errors"] += 1
            except (NotFoundError, OrderStateError):
                continue
        return summary

    def reissue_missing_invoices(self):
        issued = 0
        for order in Order.objects.filter(invoice__isnull=True).exclude(status=OrderStatus.PENDING_PAYMENT):
            if self._issue_invoice_safely(order, schedule_retry=False):
                issued += 1
        return issued

    # ─── Invoices ────────────────────────────────────────────────────────────

    def issue_invoice(self, order):
        """Issue (or fetch) the invoice and mail it when it is new."""
        existed = Invoice.objects.filter(order=order).exists()
        invoice = self.invoices.issue(order)
        if not existed:
            self._enqueue_email(invoice)
        return invoice

    def _issue_invoice_safely(self, order, schedule_retry=True):
        try:
            return self.issue_invoice(order)
        except InvoiceGenerationError:
            logger.exception(f"Invoice generation failed for order {order.order_number}; payment is kept")
            if schedule_retry:
                from .tasks import generate_order_invoice

                try:
                    generate_order_invoice.apply_async(
                        args=[str(order.pk)], countdown=self.config.invoice_retry_delay
                    )
                except OperationalError:
                    logger.exception(f"Could not schedule invoice retry for order {order.order_number}")
            return None

    def _enqueue_email(self, invoice):
        from .tasks import send_invoice_email_task

        try:
            send_invoice_email_task.delay(invoice.pk)
        except OperationalError:
            logger.exception(f"Could not queue invoice email for {invoice.invoice_number}")

    # ─── Reads ───────────────────────────────────────────────────────────────

    def receipt(self, order):
        invoice = Invoice.objects.filter(order=order).first()
        return {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "invoice_number": order.invoice_number,
            "pdf_url": invoice.pdf_url if invoice else None,
            "image_url": (invoice.image_url or None) if invoice else None,
        }

    def _get_pending_by_reference(self, reference, user=None):
        queryset = PendingOrder.objects.select_related("order")
        if user is not None and not getattr(user, "is_order_admin", False):
            queryset = queryset.filter(user=user)
        pending = queryset.filter(payment_reference=reference).first()
        if pending is None:
            raise NotFoundError(f"No order found for reference {reference}")
        return pending

    def check_payment_status(self, reference, user):
        """Local state plus, while still awaiting, the gateway's view. Never writes."""
        pending = self._get_pending_by_reference(reference, user)
        txn = PaymentTransaction.objects.filter(reference=reference).first()
        result = {
            "reference": reference,
            "pending_order_id": str(pending.id),
            "pending_status": pending.status,
            "transaction_status": txn.status if txn else None,
            "order_id": str(pending.order_id) if pending.order_id else None,
            "order_number": pending.order.order_number if pending.order_id else None,
            "expires_at": pending.expires_at,
            "gateway_status": None,
        }
        if pending.status == PendingOrder.Status.AWAITING_PAYMENT:
            try:
                data = self.gateway.verify_transaction(reference)
                result["gateway_status"] = data.get("status") or "unknown"
            except PaymentGatewayError as exc:
                logger.warning(f"Live status check for {reference} failed: {exc}")
                result["gateway_status"] = "unknown"
        return result

    def get_order_stats(self):
        counts = {
            row["status"]: row["count"]
            for row in Order.objects.values("status").annotate(count=Count("id"))
        }
        by_status = {status: counts.get(status, 0) for status in OrderStatus.values}
        revenue = Order.objects.exclude(
            status__in=[OrderStatus.CANCELLED, OrderStatus.REFUNDED]
        ).aggregate(total=Sum("total_amount"), average=Avg("total_amount"))

        return {
            "total_orders": sum(by_status.values()),
            "by_status": by_status,
            "awaiting_payment": PendingOrder.objects.filter(status=PendingOrder.Status.AWAITING_PAYMENT).count(),
            "total_revenue": (revenue["total"] or Decimal("0")).quantize(TWO_PLACES),
            "average_order_value": Decimal(revenue["average"] or 0).quantize(TWO_PLACES),
        }


def get_order_service() -> OrderLifecycleService:
    config = LifecycleConfig.from_settings()
    return OrderLifecycleService(
        config=config,
        gateway=PaystackGateway.from_config(config),
        invoices=InvoiceGenerator(config),
    )
