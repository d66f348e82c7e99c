"""
Catalog API Views.

Implements:
- Category listing in display order
- Catalog browsing: filter/sort pipeline with page or reveal navigation
- Autocomplete with rate limiting
"""
from asgiref.sync import async_to_sync
from django.conf import settings
from rest_framework import generics, status
from rest_framework.views import APIView
from rest_framework.response import Response

from core.rate_limiting import rate_limit
from .filtering import ALL_CATEGORIES, autocomplete, project
from .lazy import LazyReveal
from .models import Category, Product, Status
from .pagination import CatalogPaginator
from .serializers import (
    CatalogQuerySerializer,
    CategorySerializer,
    DisplayProductSerializer,
    ProductSuggestionSerializer,
)

AUTOCOMPLETE_MIN_LENGTH = 2


class CategoryListView(generics.ListAPIView):
    """
    GET: List active categories by sort order.
    """
    serializer_class = CategorySerializer
    pagination_class = None

    def get_queryset(self):
        return Category.objects.filter(status=Status.ACTIVE).order_by('sort_order', 'id')


def resolve_category(value: str):
    """
    Accept a category id or slug.

    Unknown slugs are returned unchanged so they match no product.
    """
    if value == ALL_CATEGORIES or value.isdigit():
        return value
    category_id = Category.objects.filter(slug=value).values_list('id', flat=True).first()
    return category_id if category_id is not None else value


class CatalogView(APIView):
    """
    GET: Filtered and sorted catalog.

    Query Parameters:
        - q: Search text matched against title and description
        - category: Category id or slug ('all' by default)
        - discount_only, new_only: Boolean flags
        - price_min, price_max: Effective price range, inclusive
        - discount_min, discount_max: Discount percent range, inclusive
        - min_rating: Rating floor
        - stock: all | inStock | lowStock
        - size: Exact size tag
        - sort: default | price-asc | price-desc | newest | discount | rating
        - mode: pages (default) or reveal
        - page, page_size: Page navigation (mode=pages)
        - loaded: Items already shown, the next batch is revealed (mode=reveal)

    Uses select_related to eliminate N+1 queries.
    """

    def get(self, request):
        query = CatalogQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        config = query.to_filter_config(resolve_category(params['category'] or ALL_CATEGORIES))
        products = Product.objects.select_related('category').order_by('-created_at')
        items = project(products, Category.objects.all(), config)

        if params['mode'] == CatalogQuerySerializer.MODE_REVEAL:
            return Response(self._reveal(items, params['loaded']))
        return Response(self._page(items, params['page'], params['page_size']))

    def _page(self, items, page, page_size):
        paginator = CatalogPaginator(items, items_per_page=page_size or settings.CATALOG_PAGE_SIZE)
        paginator.go_to_page(page)
        return {
            'items': DisplayProductSerializer(paginator.paginated_items, many=True).data,
            'pagination': paginator.summary(),
        }

    def _reveal(self, items, loaded):
        reveal = LazyReveal(
            items,
            initial_batch=settings.CATALOG_INITIAL_BATCH,
            batch_size=settings.CATALOG_BATCH_SIZE,
            delay=0,
            loaded_count=loaded,
        )
        if loaded is not None:
            # The client already shows `loaded` items: reveal the next batch
            # through the same guarded load_more used by other triggers
            async_to_sync(reveal.load_more)()
        return {
            'items': DisplayProductSerializer(reveal.visible_items, many=True).data,
            'reveal': reveal.summary(),
        }


class ProductAutocompleteView(APIView):
    """
    GET: Title suggestions for the search box.

    Query Parameters:
        - q: Search query (minimum 2 characters)

    Returns top 10 matching products, prefix matches first.
    Rate limited to 20 requests per minute.
    """

    @rate_limit(max_requests=20, window_seconds=60)
    def get(self, request):
        query = request.query_params.get('q', '').strip()

        if len(query) < AUTOCOMPLETE_MIN_LENGTH:
            return Response(
                {'error': f'Query must be at least {AUTOCOMPLETE_MIN_LENGTH} characters'},
                status=status.HTTP_400_BAD_REQUEST
            )

        candidates = Product.objects.filter(
            title__icontains=query,
            status=Status.ACTIVE
        ).order_by('-created_at')

        suggestions = autocomplete(candidates, query, limit=10)
        return Response(ProductSuggestionSerializer(suggestions, many=True).data)
