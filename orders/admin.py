from django.contrib import admin

from .models import Invoice, Order, OrderItem, OrderStatusHistory, PaymentTransaction, PendingOrder


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("product", "product_name", "unit_price", "quantity", "total_price")
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "user", "status", "total_amount", "currency", "paid_at", "created_at")
    list_filter = ("status", "currency")
    search_fields = ("order_number", "invoice_number", "payment_reference", "user__email")
    readonly_fields = ("order_number", "invoice_number", "payment_reference", "status", "paid_at")
    inlines = [OrderItemInline]


@admin.register(PendingOrder)
class PendingOrderAdmin(admin.ModelAdmin):
    list_display = ("payment_reference", "user", "status", "total_amount", "expires_at", "created_at")
    list_filter = ("status",)
    search_fields = ("payment_reference", "user__email")


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    list_display = ("reference", "user", "amount", "currency", "status", "channel", "paid_at")
    list_filter = ("status", "provider", "channel")
    search_fields = ("reference", "user__email")


@admin.register(OrderStatusHistory)
class OrderStatusHistoryAdmin(admin.ModelAdmin):
    list_display = ("order", "pending_order", "from_status", "to_status", "actor_type", "created_at")
    list_filter = ("to_status", "actor_type")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "order", "emailed_at", "created_at")
    search_fields = ("invoice_number", "order__order_number")
