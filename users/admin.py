from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from .models import Address, User


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    fieldsets = DjangoUserAdmin.fieldsets + (
        ("Shop", {"fields": ("phone", "date_of_birth", "gender", "role", "email_verified", "is_guest")}),
    )
    list_display = ("email", "first_name", "last_name", "phone", "role", "email_verified", "is_active")
    list_filter = ("role", "email_verified", "is_guest", "is_staff", "is_active")
    search_fields = ("email", "username", "phone", "first_name", "last_name")


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ("user", "type", "city", "state", "postal_code", "is_default")
    list_filter = ("type", "is_default", "country")
    search_fields = ("user__email", "first_name", "last_name", "city", "postal_code")
    raw_id_fields = ("user",)
