import django_filters
from django.db.models import Q

from backoffice.services.inventory_service import CATEGORY_ALIASES
from catalog.models import Product


class InventoryFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method="filter_search")
    category = django_filters.CharFilter(method="filter_category")

    class Meta:
        model = Product
        fields = ["search", "category"]

    def filter_search(self, queryset, name, value):
        return queryset.filter(Q(name__icontains=value) | Q(description__icontains=value))

    def filter_category(self, queryset, name, value):
        return queryset.filter(category__name__iexact=CATEGORY_ALIASES.get(value, value))
