from django.contrib import admin

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("product", "product_name", "unit_price", "quantity", "total_price")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "user", "status", "payment_status", "payment_method", "total_amount", "created_at")
    list_filter = ("status", "payment_status", "payment_method")
    search_fields = ("order_number", "user__email")
    inlines = [OrderItemInline]
