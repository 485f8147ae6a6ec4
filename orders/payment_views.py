"""
Paystack webhook endpoint.
"""
import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from .exceptions import OrderError, OrderValidationError, SignatureVerificationError
from .services import get_order_service

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def paystack_webhook(request):
    """
    Handle Paystack payment webhooks.

    The sender always gets the same acknowledgement, whether the delivery
    was applied, ignored, rejected for a bad signature or failed while
    being applied.
    """
    payload = request.body
    signature = request.headers.get("x-paystack-signature")

    try:
        outcome = get_order_service().process_webhook(payload, signature)
    except SignatureVerificationError:
        logger.warning(
            f"Invalid Paystack webhook signature from {request.META.get('REMOTE_ADDR')} ({len(payload)} bytes)"
        )
    except OrderValidationError as exc:
        logger.error(f"Rejected Paystack webhook payload: {exc}")
    except OrderError:
        logger.exception("Paystack webhook could not be applied; left for reconciliation")
    else:
        logger.info(f"Paystack webhook handled: {outcome}")

    return JsonResponse({"status": "received"}, status=200)
