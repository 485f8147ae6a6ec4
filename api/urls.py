from django.urls import path, include
from . import views

urlpatterns = [
    path("health/", views.health, name="health"),
    path("", include("orders.urls")),
    path("pricing/", include("catalog.urls")),
]
