from django.contrib import admin
from .models import (
    Category,
    Brand,
    Product,
    ProductImage,
    Review,
)


class ProductImageInline(admin.TabularInline):
    model = ProductImage
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "category", "brand", "price", "discounted_price", "stock_quantity", "is_active")
    list_filter = ("is_active", "is_trending", "is_must_have", "is_new_arrival", "category", "brand")
    search_fields = ("name", "slug", "description")
    inlines = [ProductImageInline]


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "user", "rating", "is_verified_purchase", "is_approved", "created_at")
    list_filter = ("is_approved", "rating")


admin.site.register(Category)
admin.site.register(Brand)
