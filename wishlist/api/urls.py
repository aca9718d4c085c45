from django.urls import path
from wishlist.api import views

app_name = "wishlist"

urlpatterns = [
    path("", views.wishlist_detail, name="detail"),
]
