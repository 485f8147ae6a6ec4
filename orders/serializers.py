from rest_framework import serializers

from .models import Invoice, Order, OrderItem, OrderStatus, OrderStatusHistory, PendingOrder


# ─── Input ───────────────────────────────────────────────────────────────────

class CartItemSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class DeliveryAddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=120)
    region = serializers.CharField(max_length=120, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=30)
    landmark = serializers.CharField(max_length=255, required=False, allow_blank=True)


class OrderCreateSerializer(serializers.Serializer):
    cart_items = CartItemSerializer(many=True)
    delivery_address = DeliveryAddressSerializer()
    delivery_notes = serializers.CharField(required=False, allow_blank=True, max_length=1000, default="")
    discount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, default=0)
    credits = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False, default=0)

    def validate_cart_items(self, value):
        if not value:
            raise serializers.ValidationError("An order must have at least one item.")
        return value


class VerifyPaymentSerializer(serializers.Serializer):
    reference = serializers.CharField(max_length=100)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")


# ─── Output ──────────────────────────────────────────────────────────────────

class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "product_id", "product_name", "product_description", "product_image",
            "category_name", "unit_price", "quantity", "total_price",
        ]


class InvoiceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Invoice
        fields = ["invoice_number", "pdf_url", "image_url", "qr_payload", "created_at"]


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = ["from_status", "to_status", "actor_type", "reason", "created_at"]


class OrderListSerializer(serializers.ModelSerializer):
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id", "order_number", "invoice_number", "status", "total_amount",
            "currency", "paid_at", "created_at", "item_count",
        ]

    def get_item_count(self, obj):
        return len(obj.items.all())


class OrderDetailSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    history = StatusHistorySerializer(many=True, read_only=True)
    invoice = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id", "order_number", "invoice_number", "status", "subtotal", "discount", "credits", "total_amount",
            "currency", "payment_reference", "paid_at", "delivery_address", "delivery_notes",
            "created_at", "updated_at", "items", "invoice", "history",
        ]

    def get_invoice(self, obj):
        invoice = Invoice.objects.filter(order=obj).first()
        return InvoiceSerializer(invoice).data if invoice else None


class PendingOrderSerializer(serializers.ModelSerializer):
    order_number = serializers.SerializerMethodField()

    class Meta:
        model = PendingOrder
        fields = [
            "id", "status", "cart_items", "subtotal", "discount", "credits", "total_amount", "currency",
            "delivery_address", "delivery_notes", "payment_reference", "authorization_url",
            "created_at", "expires_at", "converted_at", "order_number",
        ]

    def get_order_number(self, obj):
        return obj.order.order_number if obj.order_id else None
