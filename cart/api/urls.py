from django.urls import path
from cart.api import views

app_name = "cart"

urlpatterns = [
    path("", views.cart_detail, name="detail"),                       # GET / POST / DELETE
    path("<int:product_id>/", views.cart_item, name="item"),          # PATCH / DELETE
]
