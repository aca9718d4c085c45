from django.urls import path

from orders.api.views import guest_checkout

urlpatterns = [
    path("checkout/", guest_checkout, name="guest-checkout"),
]
