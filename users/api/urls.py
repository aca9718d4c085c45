from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from users.api import views

app_name = "auth"

urlpatterns = [
    path("signup/", views.signup, name="signup"),
    path("register/", views.register, name="register"),
    path("verify-otp/", views.verify_otp, name="verify-otp"),
    path("resend-otp/", views.resend_otp, name="resend-otp"),
    path("signin/", views.signin, name="signin"),
    path("me/", views.me, name="me"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
]
