from django.urls import include, path
from rest_framework.routers import SimpleRouter

from backoffice.api import views

router = SimpleRouter()
router.register(r"inventory", views.InventoryViewSet, basename="admin-inventory")

urlpatterns = [
    path("dashboard/", views.dashboard, name="admin-dashboard"),
    path("sales/", views.sales, name="admin-sales"),
    path("uploads/images/", views.upload_images, name="admin-upload-images"),
    path("cleanup-images/", views.cleanup_images, name="admin-cleanup-images"),
    path("profile/", views.profile, name="admin-profile"),
    path("profile/change-password/", views.change_password, name="admin-profile-change-password"),
    path("", include(router.urls)),
]
