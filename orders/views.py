import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authflow.permissions import IsOrderAdmin
from .exceptions import OrderError, PaymentGatewayError
from .models import Order, OrderStatus, PendingOrder
from .pagination import StandardResultsSetPagination
from .serializers import (
    CancelSerializer,
    OrderCreateSerializer,
    OrderDetailSerializer,
    OrderListSerializer,
    OrderStatusUpdateSerializer,
    PendingOrderSerializer,
    VerifyPaymentSerializer,
)
from .services import Actor, get_order_service

logger = logging.getLogger(__name__)

GENERIC_GATEWAY_MESSAGE = "Payment service is temporarily unavailable. Please try again shortly."


def error_response(exc: OrderError):
    """Map a lifecycle error to the API's ``{"error": ...}`` shape."""
    message = GENERIC_GATEWAY_MESSAGE if isinstance(exc, PaymentGatewayError) else str(exc)
    return Response({"error": message, "retryable": exc.retryable}, status=exc.status_code)


def orders_for(user):
    queryset = Order.objects.select_related("user").prefetch_related("items")
    if getattr(user, "is_order_admin", False):
        return queryset
    return queryset.filter(user=user)


class OrderView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination
    serializer_class = OrderListSerializer

    def get_queryset(self):
        """Return only the logged-in user's orders."""
        queryset = Order.objects.filter(user=self.request.user).prefetch_related("items")
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset.order_by("-created_at")

    def get(self, request, *args, **kwargs):
        status_filter = request.query_params.get("status")
        if status_filter and status_filter not in OrderStatus.values:
            return Response({"error": f"Unknown status '{status_filter}'"}, status=status.HTTP_400_BAD_REQUEST)

        page = self.paginate_queryset(self.get_queryset())
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def post(self, request, *args, **kwargs):
        """Create a pending order and start payment."""
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = get_order_service().create_pending_order(
                user=request.user,
                cart_items=data["cart_items"],
                delivery_address=data["delivery_address"],
                delivery_notes=data.get("delivery_notes", ""),
                discount=data.get("discount", 0),
                credits=data.get("credits", 0),
            )
        except OrderError as exc:
            return error_response(exc)

        return Response(result, status=status.HTTP_201_CREATED)


class VerifyPaymentView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = VerifyPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            receipt = get_order_service().verify_payment(serializer.validated_data["reference"], user=request.user)
        except OrderError as exc:
            return error_response(exc)

        return Response({"message": "Payment verified", **receipt}, status=status.HTTP_200_OK)


class PaymentStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        reference = request.query_params.get("reference")
        if not reference:
            return Response({"error": "reference is required"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            result = get_order_service().check_payment_status(reference, request.user)
        except OrderError as exc:
            return error_response(exc)
        return Response(result, status=status.HTTP_200_OK)


class OrderDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, order_id):
        order = get_object_or_404(orders_for(request.user).prefetch_related("history"), id=order_id)
        return Response(OrderDetailSerializer(order).data)


class OrderByNumberView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, order_number):
        order = get_object_or_404(
            orders_for(request.user).prefetch_related("history"), order_number=order_number.upper()
        )
        return Response(OrderDetailSerializer(order).data)


class OrderCancelView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, order_id):
        """Customer cancels their own order"""
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = get_order_service().cancel_order(
                order_id, Actor.for_user(request.user), reason=serializer.validated_data["reason"]
            )
        except OrderError as exc:
            return error_response(exc)

        return Response(
            {"message": "Order cancelled successfully", "order_number": order.order_number, "status": order.status},
            status=status.HTTP_200_OK,
        )


class OrderStatusUpdateView(APIView):
    permission_classes = [IsAuthenticated, IsOrderAdmin]

    def put(self, request, order_id):
        serializer = OrderStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = get_order_service().update_order_status(
                order_id,
                serializer.validated_data["status"],
                Actor.for_user(request.user),
                reason=serializer.validated_data["reason"],
            )
        except OrderError as exc:
            return error_response(exc)

        return Response({"order_number": order.order_number, "status": order.status}, status=status.HTTP_200_OK)


class PendingOrderDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pending_order_id):
        queryset = PendingOrder.objects.select_related("order")
        if not request.user.is_order_admin:
            queryset = queryset.filter(user=request.user)
        pending = get_object_or_404(queryset, id=pending_order_id)
        return Response(PendingOrderSerializer(pending).data)


class PendingOrderCancelView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pending_order_id):
        try:
            get_order_service().cancel_pending_order(pending_order_id, Actor.for_user(request.user))
        except OrderError as exc:
            return error_response(exc)

        return Response({"message": "Pending order cancelled"}, status=status.HTTP_200_OK)


class OrderStatsView(APIView):
    permission_classes = [IsAuthenticated, IsOrderAdmin]

    def get(self, request):
        return Response(get_order_service().get_order_stats(), status=status.HTTP_200_OK)
