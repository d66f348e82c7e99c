"""
Tests for catalog browsing logic.

Test Cases:
1. Filter/sort pipeline steps, derived fields and edge cases
2. Pagination bounds and self-correction
3. Lazy reveal growth, debounce and clamping
4. Catalog API endpoints
"""
import asyncio
from datetime import timedelta

from django.test import SimpleTestCase, override_settings
from django.utils import timezone
from rest_framework.test import APITestCase

from .filtering import (
    FilterConfig,
    SortKey,
    StockBucket,
    autocomplete,
    discount_percent,
    project,
)
from .lazy import LazyReveal
from .models import Category, Product, Status, generate_slug
from .pagination import CatalogPaginator


NOW = timezone.now()


def make_product(pk, title, retail_price=10000, **fields):
    """Unsaved product for pipeline tests."""
    defaults = {
        'description': '',
        'category_id': None,
        'discount_price': None,
        'discount_active': False,
        'stock': 10,
        'images': [],
        'status': Status.ACTIVE,
        'rating': 0,
        'size': '',
        'created_at': NOW - timedelta(days=30),
    }
    defaults.update(fields)
    return Product(id=pk, title=title, retail_price=retail_price, **defaults)


class FilterPipelineTestCase(SimpleTestCase):
    """Test cases for the catalog filter/sort pipeline."""

    def setUp(self):
        self.categories = [
            Category(id=1, name='Cleaning', slug='cleaning'),
            Category(id=2, name='Laundry', slug='laundry'),
        ]
        self.products = [
            make_product(1, 'Glass Cleaner', 25000, category_id=1, description='Streak-free shine',
                         rating=4.5, size='500ml', stock=40),
            make_product(2, 'Washing Powder', 45000, category_id=2, discount_price=38000,
                         discount_active=True, rating=4.8, size='3kg', stock=3,
                         created_at=NOW - timedelta(days=2)),
            make_product(3, 'Floor Cleaner', 30000, category_id=1, rating=3.9, size='1L', stock=0,
                         description='Pine scented'),
            make_product(4, 'Old Soap', 5000, category_id=1, status=Status.INACTIVE),
            make_product(5, 'Fabric Softener', 30000, category_id=2, discount_price=27000,
                         discount_active=False, rating=4.1, size='1L', stock=6,
                         created_at=NOW - timedelta(days=1)),
        ]

    def run_pipeline(self, **config):
        return project(self.products, self.categories, FilterConfig(**config), now=NOW)

    def ids(self, items):
        return [item.id for item in items]

    def test_inactive_products_dropped(self):
        """Only active products reach the result, in source order."""
        result = self.run_pipeline()
        self.assertEqual(self.ids(result), ['1', '2', '3', '5'])

    def test_category_filter(self):
        result = self.run_pipeline(category_id='2')
        self.assertEqual(self.ids(result), ['2', '5'])

    def test_unknown_category_matches_nothing(self):
        self.assertEqual(self.run_pipeline(category_id='999'), [])

    def test_search_matches_title_case_insensitive(self):
        result = self.run_pipeline(search='CLEANER')
        self.assertEqual(self.ids(result), ['1', '3'])

    def test_search_matches_description(self):
        result = self.run_pipeline(search='pine')
        self.assertEqual(self.ids(result), ['3'])

    def test_blank_search_passes_everything(self):
        self.assertEqual(len(self.run_pipeline(search='   ')), 4)

    def test_derived_discount_fields(self):
        """
        Test: Active discount drives price and percent.

        Given: retail 45000, discount 38000, discount active
        Then: effective price 38000, discount percent 16
        """
        item = self.run_pipeline(category_id='2')[0]
        self.assertEqual(item.effective_price, 38000)
        self.assertEqual(item.original_price, 45000)
        self.assertEqual(item.discount_percent, 16)
        self.assertTrue(item.show_original_price)
        self.assertEqual(item.category_name, 'Laundry')

    def test_inactive_discount_ignored(self):
        item = [p for p in self.run_pipeline() if p.id == '5'][0]
        self.assertEqual(item.effective_price, 30000)
        self.assertEqual(item.discount_percent, 0)
        self.assertFalse(item.show_original_price)

    def test_discount_invariant_holds(self):
        """Effective price never exceeds the original price."""
        self.products.append(
            make_product(6, 'Broken Discount', 1000, discount_price=5000, discount_active=True)
        )
        for item in self.run_pipeline():
            self.assertLessEqual(item.effective_price, item.original_price)
            self.assertGreaterEqual(item.discount_percent, 0)
            self.assertLessEqual(item.discount_percent, 100)

    def test_discount_percent_rounds_half_away_from_zero(self):
        self.assertEqual(discount_percent(200, 199, True), 1)   # 0.5 -> 1
        self.assertEqual(discount_percent(1000, 995, True), 1)  # 0.5 -> 1
        self.assertEqual(discount_percent(1000, 996, True), 0)
        self.assertEqual(discount_percent(1000, None, True), 0)
        self.assertEqual(discount_percent(1000, 500, False), 0)

    def test_new_flag_and_new_only(self):
        result = self.run_pipeline(new_only=True)
        self.assertEqual(self.ids(result), ['2', '5'])
        self.assertTrue(all(item.is_new for item in result))

    def test_discount_only(self):
        self.assertEqual(self.ids(self.run_pipeline(discount_only=True)), ['2'])

    def test_price_range_inclusive_on_effective_price(self):
        result = self.run_pipeline(price_min=25000, price_max=30000)
        self.assertEqual(self.ids(result), ['1', '3', '5'])

        result = self.run_pipeline(price_min=38000, price_max=38000)
        self.assertEqual(self.ids(result), ['2'])

    def test_discount_range(self):
        result = self.run_pipeline(discount_min=10, discount_max=20)
        self.assertEqual(self.ids(result), ['2'])

    def test_min_rating(self):
        self.assertEqual(self.ids(self.run_pipeline(min_rating=4.5)), ['1', '2'])

    def test_stock_buckets(self):
        """inStock is more than 5 units, lowStock is 1 to 5."""
        self.assertEqual(self.ids(self.run_pipeline(stock=StockBucket.IN_STOCK)), ['1', '5'])
        self.assertEqual(self.ids(self.run_pipeline(stock=StockBucket.LOW_STOCK)), ['2'])

    def test_size_exact_match(self):
        self.assertEqual(self.ids(self.run_pipeline(size='1L')), ['3', '5'])
        self.assertEqual(self.run_pipeline(size='1l'), [])

    def test_sort_price(self):
        self.assertEqual(self.ids(self.run_pipeline(sort=SortKey.PRICE_ASC)), ['1', '3', '5', '2'])
        self.assertEqual(self.ids(self.run_pipeline(sort=SortKey.PRICE_DESC)), ['2', '3', '5', '1'])

    def test_sort_is_stable_for_ties(self):
        """Products 3 and 5 share a price and keep their input order both ways."""
        asc = self.ids(self.run_pipeline(sort=SortKey.PRICE_ASC))
        desc = self.ids(self.run_pipeline(sort=SortKey.PRICE_DESC))
        self.assertLess(asc.index('3'), asc.index('5'))
        self.assertLess(desc.index('3'), desc.index('5'))

    def test_sort_newest_discount_rating(self):
        self.assertEqual(self.ids(self.run_pipeline(sort=SortKey.NEWEST))[:2], ['5', '2'])
        self.assertEqual(self.ids(self.run_pipeline(sort=SortKey.DISCOUNT))[0], '2')
        self.assertEqual(self.ids(self.run_pipeline(sort=SortKey.RATING)), ['2', '1', '5', '3'])

    def test_pipeline_is_repeatable(self):
        config = FilterConfig(search='e', sort=SortKey.PRICE_DESC)
        first = project(self.products, self.categories, config, now=NOW)
        second = project(self.products, self.categories, config, now=NOW)
        self.assertEqual(first, second)

    def test_empty_input(self):
        self.assertEqual(project([], self.categories, FilterConfig(), now=NOW), [])

    def test_missing_category_name_is_blank(self):
        self.products.append(make_product(7, 'Loose Item', 1000))
        item = self.run_pipeline(search='loose')[0]
        self.assertEqual(item.category_name, '')

    def test_autocomplete_prefix_first(self):
        suggestions = autocomplete(self.products, 'cle')
        self.assertEqual([p.id for p in suggestions], [1, 3])

        suggestions = autocomplete(self.products, 'floor')
        self.assertEqual([p.id for p in suggestions], [3])

        self.assertEqual(autocomplete(self.products, 'soap'), [])
        self.assertEqual(autocomplete(self.products, ''), [])


class PaginatorTestCase(SimpleTestCase):
    """Test cases for page navigation."""

    def test_total_pages_and_clamping(self):
        """
        Test: Requested pages are clamped into range.

        Given: 25 items, 12 per page
        Then: 3 pages; page 10 clamps to 3, page -5 to 1
        """
        paginator = CatalogPaginator(list(range(25)), items_per_page=12)
        self.assertEqual(paginator.total_pages, 3)

        paginator.go_to_page(10)
        self.assertEqual(paginator.current_page, 3)
        self.assertEqual(paginator.paginated_items, [24])

        paginator.go_to_page(-5)
        self.assertEqual(paginator.current_page, 1)

    def test_self_corrects_when_items_shrink(self):
        paginator = CatalogPaginator(list(range(25)), items_per_page=12)
        paginator.go_to_page(3)

        paginator.items = list(range(5))

        self.assertEqual(paginator.current_page, 1)
        self.assertEqual(paginator.paginated_items, [0, 1, 2, 3, 4])

    def test_empty_list(self):
        paginator = CatalogPaginator([], items_per_page=12)
        self.assertEqual(paginator.total_pages, 0)
        self.assertEqual(paginator.current_page, 1)
        self.assertEqual(paginator.paginated_items, [])
        self.assertFalse(paginator.has_next_page)
        self.assertFalse(paginator.has_prev_page)
        self.assertEqual(paginator.end_index, 0)

        paginator.next_page()
        self.assertEqual(paginator.current_page, 1)

    def test_navigation_and_bounds(self):
        paginator = CatalogPaginator(list(range(1, 26)), items_per_page=12)
        self.assertEqual((paginator.start_index, paginator.end_index), (1, 12))

        paginator.next_page()
        self.assertEqual(paginator.current_page, 2)
        self.assertTrue(paginator.has_prev_page)
        self.assertTrue(paginator.has_next_page)
        self.assertEqual(paginator.paginated_items, list(range(13, 25)))

        paginator.next_page()
        paginator.next_page()
        self.assertEqual(paginator.current_page, 3)
        self.assertEqual((paginator.start_index, paginator.end_index), (25, 25))

        paginator.prev_page()
        self.assertEqual(paginator.current_page, 2)

        paginator.reset_page()
        self.assertEqual(paginator.current_page, 1)

    def test_every_length_stays_in_bounds(self):
        for length in range(0, 40):
            for per_page in (1, 5, 12):
                paginator = CatalogPaginator(list(range(length)), items_per_page=per_page)
                self.assertEqual(paginator.total_pages, -(-length // per_page))
                for requested in (-1, 0, 1, 2, 7, 100):
                    paginator.go_to_page(requested)
                    self.assertGreaterEqual(paginator.current_page, 1)
                    self.assertLessEqual(paginator.current_page, max(1, paginator.total_pages))

    def test_invalid_page_size(self):
        with self.assertRaises(ValueError):
            CatalogPaginator([], items_per_page=0)


class LazyRevealTestCase(SimpleTestCase):
    """Test cases for incremental reveal."""

    async def test_growth_clamps_to_total(self):
        """
        Test: Each load reveals one batch, never past the end.

        Given: 50 items, initial batch 12, batch size 12
        Then: 24 after one load, 50 after four
        """
        reveal = LazyReveal(list(range(50)), initial_batch=12, batch_size=12, delay=0)
        self.assertEqual(reveal.loaded_count, 12)

        self.assertTrue(await reveal.load_more())
        self.assertEqual(reveal.loaded_count, 24)

        for _ in range(3):
            await reveal.load_more()
        self.assertEqual(reveal.loaded_count, 50)
        self.assertFalse(reveal.has_more)
        self.assertEqual(reveal.visible_items, list(range(50)))

        self.assertFalse(await reveal.load_more())
        self.assertEqual(reveal.loaded_count, 50)

    async def test_concurrent_loads_are_ignored(self):
        """Only one batch may be in flight at a time."""
        reveal = LazyReveal(list(range(50)), initial_batch=12, batch_size=12, delay=0.01)

        results = await asyncio.gather(reveal.load_more(), reveal.load_more(), reveal.load_more())

        self.assertEqual(sorted(results), [False, False, True])
        self.assertEqual(reveal.loaded_count, 24)
        self.assertFalse(reveal.is_loading)

    async def test_is_loading_during_delay(self):
        reveal = LazyReveal(list(range(30)), delay=0.05)
        task = asyncio.ensure_future(reveal.load_more())
        await asyncio.sleep(0)
        self.assertTrue(reveal.is_loading)
        await task
        self.assertFalse(reveal.is_loading)

    async def test_cancelled_load_does_not_grow(self):
        reveal = LazyReveal(list(range(30)), delay=10)
        task = asyncio.ensure_future(reveal.load_more())
        await asyncio.sleep(0)

        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task

        self.assertFalse(reveal.is_loading)
        self.assertEqual(reveal.loaded_count, 12)

    def test_shrink_clamps_to_initial_batch(self):
        reveal = LazyReveal(list(range(50)), initial_batch=12, batch_size=12, loaded_count=48)
        reveal.items = list(range(30))
        self.assertEqual(reveal.loaded_count, 12)

        reveal.items = list(range(5))
        self.assertEqual(reveal.loaded_count, 5)
        self.assertEqual(reveal.visible_items, list(range(5)))

    def test_reset(self):
        reveal = LazyReveal(list(range(50)), initial_batch=12, loaded_count=36)
        reveal.reset()
        self.assertEqual(reveal.loaded_count, 12)

    def test_short_list_has_nothing_more(self):
        reveal = LazyReveal(list(range(5)), initial_batch=12)
        self.assertEqual(reveal.loaded_count, 5)
        self.assertFalse(reveal.has_more)


class CategoryModelTestCase(SimpleTestCase):

    def test_generate_slug(self):
        self.assertEqual(generate_slug('Home & Garden  Care'), 'home-garden-care')
        self.assertEqual(generate_slug('  Kir -- yuvish '), 'kir-yuvish')


@override_settings(RATE_LIMIT_ENABLED=False, CATALOG_PAGE_SIZE=2, CATALOG_INITIAL_BATCH=2, CATALOG_BATCH_SIZE=2)
class CatalogAPITestCase(APITestCase):
    """Test cases for catalog endpoints."""

    def setUp(self):
        self.cleaning = Category.objects.create(name='Cleaning', sort_order=2)
        self.laundry = Category.objects.create(name='Laundry', sort_order=1)
        Category.objects.create(name='Hidden', status=Status.INACTIVE)

        prices = [12000, 8000, 30000, 15000, 22000]
        for index, price in enumerate(prices, start=1):
            Product.objects.create(
                title=f'Cleaner {index}',
                sku=f'SKU-{index}',
                retail_price=price,
                category=self.cleaning if index % 2 else self.laundry,
                stock=10,
            )
        Product.objects.create(
            title='Retired Cleaner', sku='SKU-OLD', retail_price=100,
            category=self.cleaning, status=Status.INACTIVE,
        )

    def test_categories_in_sort_order(self):
        response = self.client.get('/api/categories/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([c['slug'] for c in response.data], ['laundry', 'cleaning'])
        self.assertEqual(response.data[1]['product_count'], 3)

    def test_paged_catalog(self):
        response = self.client.get('/api/catalog/', {'sort': 'price-asc', 'page': 2})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([item['effective_price'] for item in response.data['items']], [15000, 22000])
        self.assertEqual(response.data['pagination']['total_items'], 5)
        self.assertEqual(response.data['pagination']['total_pages'], 3)
        self.assertEqual(response.data['pagination']['current_page'], 2)

    def test_out_of_range_page_is_clamped(self):
        response = self.client.get('/api/catalog/', {'sort': 'price-asc', 'page': 99})
        self.assertEqual(response.data['pagination']['current_page'], 3)
        self.assertEqual([item['effective_price'] for item in response.data['items']], [30000])

    def test_reveal_mode(self):
        response = self.client.get('/api/catalog/', {'mode': 'reveal', 'sort': 'price-asc'})
        self.assertEqual(response.data['reveal']['loaded_count'], 2)
        self.assertTrue(response.data['reveal']['has_more'])

        response = self.client.get('/api/catalog/', {'mode': 'reveal', 'sort': 'price-asc', 'loaded': 4})
        self.assertEqual(response.data['reveal']['loaded_count'], 5)
        self.assertFalse(response.data['reveal']['has_more'])
        self.assertEqual(len(response.data['items']), 5)

    def test_category_by_slug_and_id(self):
        by_slug = self.client.get('/api/catalog/', {'category': 'laundry', 'page_size': 10})
        by_id = self.client.get('/api/catalog/', {'category': self.laundry.id, 'page_size': 10})
        self.assertEqual(by_slug.data['pagination']['total_items'], 2)
        self.assertEqual(by_slug.data['items'], by_id.data['items'])

        unknown = self.client.get('/api/catalog/', {'category': 'no-such-category'})
        self.assertEqual(unknown.data['items'], [])

    def test_invalid_sort_rejected(self):
        response = self.client.get('/api/catalog/', {'sort': 'popularity'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('sort', response.data)

    def test_autocomplete(self):
        response = self.client.get('/api/catalog/autocomplete/', {'q': 'clean'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 5)
        self.assertNotIn('Retired Cleaner', [s['title'] for s in response.data])

    def test_autocomplete_short_query(self):
        response = self.client.get('/api/catalog/autocomplete/', {'q': 'c'})
        self.assertEqual(response.status_code, 400)
