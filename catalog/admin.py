from django.contrib import admin

from .models import Product, PricingRangeSetting


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "category_name", "price", "original_price", "quantity", "in_stock", "is_active")
    list_filter = ("in_stock", "is_active", "category_name")
    search_fields = ("name", "category_name")


@admin.register(PricingRangeSetting)
class PricingRangeSettingAdmin(admin.ModelAdmin):
    list_display = ("range_id", "percentage", "updated_at")
