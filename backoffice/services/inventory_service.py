import logging

from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404

from catalog.models import Category, Product, ProductImage

logger = logging.getLogger(__name__)

# Names the back-office form uses that differ from the stored category name.
CATEGORY_ALIASES = {
    "Bath & Body": "Bath and Body",
}

PRODUCT_FIELDS = (
    "name",
    "description",
    "price",
    "discounted_price",
    "stock_quantity",
    "is_trending",
    "is_must_have",
    "is_new_arrival",
    "is_active",
)


class DuplicateProduct(ValueError):
    pass


class InventoryService:

    @staticmethod
    def resolve_category(name: str) -> Category:
        db_name = CATEGORY_ALIASES.get(name, name)
        category = Category.objects.filter(name__iexact=db_name).first()
        if category is None:
            raise ValueError(f"Invalid category: {name}")
        return category

    @staticmethod
    def _check_slug(slug: str, exclude_pk=None) -> None:
        qs = Product.objects.filter(slug=slug)
        if exclude_pk is not None:
            qs = qs.exclude(pk=exclude_pk)
        if qs.exists():
            raise DuplicateProduct("A product with this name already exists. Please use a different name.")

    @staticmethod
    def replace_images(product: Product, image_urls, primary_index: int = 0) -> None:
        product.images.all().delete()
        ProductImage.objects.bulk_create([
            ProductImage(
                product=product,
                image_url=url,
                alt_text=product.name,
                is_primary=(i == primary_index),
                sort_order=i,
            )
            for i, url in enumerate(image_urls)
        ])

    @staticmethod
    def _save(product: Product, data: dict) -> Product:
        try:
            with transaction.atomic():
                product.save()
        except IntegrityError:
            # only a slug taken by a concurrent insert is a duplicate
            if Product.objects.filter(slug=product.slug).exclude(pk=product.pk).exists():
                raise DuplicateProduct("A product with this name already exists. Please use a different name.")
            raise

        image_urls = data.get("image_urls") or []
        if image_urls:
            InventoryService.replace_images(product, image_urls, data.get("primary_image_index", 0))
        return product

    @staticmethod
    @transaction.atomic
    def create_product(data: dict) -> Product:
        category = InventoryService.resolve_category(data["category"])
        slug = Product.make_slug(data["name"])
        InventoryService._check_slug(slug)

        product = Product(category=category, slug=slug)
        product.brand = data.get("brand")
        for f in PRODUCT_FIELDS:
            if f in data:
                setattr(product, f, data[f])

        product = InventoryService._save(product, data)
        logger.info("Product %s created (%s)", product.pk, product.slug)
        return product

    @staticmethod
    @transaction.atomic
    def update_product(product_id: int, data: dict) -> Product:
        product = get_object_or_404(Product.objects.select_for_update(), pk=product_id)
        product.category = InventoryService.resolve_category(data["category"])
        product.slug = Product.make_slug(data["name"])
        InventoryService._check_slug(product.slug, exclude_pk=product.pk)

        if "brand" in data:
            product.brand = data["brand"]
        for f in PRODUCT_FIELDS:
            if f in data:
                setattr(product, f, data[f])

        product = InventoryService._save(product, data)
        logger.info("Product %s updated", product.pk)
        return product

    @staticmethod
    def delete_product(product_id: int) -> None:
        product = get_object_or_404(Product, pk=product_id)
        product.delete()
        logger.info("Product %s deleted", product_id)
