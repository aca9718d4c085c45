from django.urls import include, path
from rest_framework.routers import DefaultRouter

from catalog.api import views

router = DefaultRouter()
router.register(r"brands", views.BrandViewSet, basename="catalog-brands")

urlpatterns = [
    path("products/", views.product_list, name="catalog-products"),
    path("products/<int:product_id>/", views.product_detail, name="catalog-product-detail"),
    path("products/<int:product_id>/images/", views.product_images, name="catalog-product-images"),
    path("products/<int:product_id>/reviews/", views.product_reviews, name="catalog-product-reviews"),
    path("reviews/<int:review_id>/", views.review_detail, name="catalog-review-detail"),
    path("categories/", views.category_list, name="catalog-categories"),
    path("", include(router.urls)),
]
