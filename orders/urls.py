from django.urls import path, include
from . import views
from . import payment_views as payviews

payment_urls = [
    path("paystack/", payviews.paystack_webhook, name="paystack-webhook"),
]

order_urls = [
    path("", views.OrderView.as_view(), name="order"),
    path("verify-payment/", views.VerifyPaymentView.as_view(), name="order-verify-payment"),
    path("payment-status/", views.PaymentStatusView.as_view(), name="order-payment-status"),
    path("admin/stats/", views.OrderStatsView.as_view(), name="order-stats"),
    path("number/<str:order_number>/", views.OrderByNumberView.as_view(), name="order-by-number"),
    path("pending/<uuid:pending_order_id>/", views.PendingOrderDetailView.as_view(), name="pending-order-detail"),
    path(
        "pending/<uuid:pending_order_id>/cancel/",
        views.PendingOrderCancelView.as_view(),
        name="pending-order-cancel",
    ),
    path("<uuid:order_id>/", views.OrderDetailView.as_view(), name="order-detail"),
    path("<uuid:order_id>/cancel/", views.OrderCancelView.as_view(), name="order-cancel"),
    path("<uuid:order_id>/status/", views.OrderStatusUpdateView.as_view(), name="order-status"),
]

urlpatterns = [
    path("orders/", include(order_urls)),
    path("webhook/", include(payment_urls)),
]
