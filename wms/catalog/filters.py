import django_filters
from django.db.models import F, Q
from .models import Part, Product


class PartFilter(django_filters.FilterSet):
    """Filter for Part list using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    supplier = django_filters.NumberFilter(field_name='supplier_id', lookup_expr='exact')
    is_active = django_filters.BooleanFilter(field_name='is_active')
    location = django_filters.CharFilter(field_name='storage_location', lookup_expr='istartswith')
    low_stock = django_filters.BooleanFilter(method='filter_low_stock', label='Low Stock')

    class Meta:
        model = Part
        fields = ['search', 'category', 'supplier', 'is_active', 'location', 'low_stock']

    def filter_search(self, queryset, name, value):
        """Match code, name or description; every word must appear"""
        words = [w for w in (value or '').split() if w]
        for word in words:
            queryset = queryset.filter(
                Q(part_code__icontains=word) |
                Q(part_name__icontains=word) |
                Q(description__icontains=word)
            )
        return queryset

    def filter_low_stock(self, queryset, name, value):
        if value is None:
            return queryset
        low = Q(inventory__current_qty__lte=F('safety_stock'))
        return queryset.filter(low) if value else queryset.exclude(low)


class ProductFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    is_active = django_filters.BooleanFilter(field_name='is_active')

    class Meta:
        model = Product
        fields = ['search', 'category', 'is_active']

    def filter_search(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(Q(product_code__icontains=value) | Q(product_name__icontains=value))
