"""
Serializers for catalog models and catalog queries.
"""
from rest_framework import serializers

from .filtering import ALL_CATEGORIES, FilterConfig, SortKey, StockBucket
from .models import Category, Product, Status


class CategorySerializer(serializers.ModelSerializer):
    """Serializer for Category model."""
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'description', 'image', 'sort_order', 'product_count']

    def get_product_count(self, obj):
        """Get count of active products in this category."""
        return obj.products.filter(status=Status.ACTIVE).count()


class ProductSuggestionSerializer(serializers.ModelSerializer):
    """Minimal serializer for autocomplete suggestions."""
    price = serializers.IntegerField(source='effective_price', read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'title', 'price']


class DisplayProductSerializer(serializers.Serializer):
    """Serializer for DisplayProduct records produced by the pipeline."""
    id = serializers.CharField()
    name = serializers.CharField()
    effective_price = serializers.IntegerField()
    original_price = serializers.IntegerField()
    show_original_price = serializers.BooleanField()
    category_name = serializers.CharField(allow_blank=True)
    discount_percent = serializers.IntegerField()
    is_new = serializers.BooleanField()
    stock = serializers.IntegerField()
    rating = serializers.FloatField()
    size = serializers.CharField(allow_blank=True)
    image = serializers.CharField(allow_blank=True)


class CatalogQuerySerializer(serializers.Serializer):
    """
    Validates catalog query parameters.

    Range ordering is not checked here: the filter controls keep
    min <= max, and inverted ranges simply match nothing.
    """
    MODE_PAGES = 'pages'
    MODE_REVEAL = 'reveal'

    q = serializers.CharField(required=False, allow_blank=True, default='')
    category = serializers.CharField(required=False, allow_blank=True, default=ALL_CATEGORIES)
    discount_only = serializers.BooleanField(required=False, default=False)
    new_only = serializers.BooleanField(required=False, default=False)
    price_min = serializers.IntegerField(required=False, min_value=0, default=0)
    price_max = serializers.IntegerField(required=False, min_value=0, allow_null=True, default=None)
    discount_min = serializers.IntegerField(required=False, min_value=0, max_value=100, default=0)
    discount_max = serializers.IntegerField(required=False, min_value=0, max_value=100, default=100)
    min_rating = serializers.FloatField(required=False, min_value=0, max_value=5, default=0)
    stock = serializers.ChoiceField(choices=StockBucket.choices, required=False, default=StockBucket.ALL)
    size = serializers.CharField(required=False, allow_blank=True, default='')
    sort = serializers.ChoiceField(choices=SortKey.choices, required=False, default=SortKey.DEFAULT)

    mode = serializers.ChoiceField(
        choices=[MODE_PAGES, MODE_REVEAL], required=False, default=MODE_PAGES
    )
    page = serializers.IntegerField(required=False, default=1)
    page_size = serializers.IntegerField(required=False, min_value=1, max_value=100, default=None)
    loaded = serializers.IntegerField(required=False, min_value=0, default=None)

    def to_filter_config(self, category_id=None) -> FilterConfig:
        """
        Build the FilterConfig from validated data.

        Args:
            category_id: Resolved category id, overriding the raw parameter
        """
        data = self.validated_data
        return FilterConfig(
            search=data['q'],
            category_id=str(category_id if category_id is not None else data['category']),
            discount_only=data['discount_only'],
            new_only=data['new_only'],
            price_min=data['price_min'],
            price_max=data['price_max'],
            discount_min=data['discount_min'],
            discount_max=data['discount_max'],
            min_rating=data['min_rating'],
            stock=data['stock'],
            size=data['size'] or None,
            sort=data['sort'],
        )
