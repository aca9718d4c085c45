from django.urls import path

from users.api import views

app_name = "addresses"

urlpatterns = [
    path("", views.addresses, name="list"),
]
