import django_filters
from catalog.models import Brand


class BrandFilter(django_filters.FilterSet):
    featured = django_filters.BooleanFilter(field_name="is_featured")
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")

    class Meta:
        model = Brand
        fields = ["featured", "name"]
