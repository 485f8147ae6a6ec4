from django.urls import path
from . import views

urlpatterns = [
    path("ranges/", views.PricingRangesView.as_view(), name="pricing-ranges"),
    path("apply/", views.ApplyPricingView.as_view(), name="pricing-apply"),
]
