"""
Catalog filter/sort pipeline.

Turns the raw product and category lists fetched from the datastore into
the ordered list of display-ready products shown by the storefront. The
pipeline is a pure function of its inputs: products can be Product model
instances or any objects exposing the same attributes.

Steps (in order):
1. Keep active products
2. Category filter
3. Case-insensitive search on title, then description
4. Derive effective price, discount percent and "new" flag
5. Discount-only / new-only flags
6. Price and discount-percent ranges (inclusive)
7. Rating floor and stock bucket
8. Exact size tag
9. Stable sort
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from django.db import models
from django.utils import timezone

from .models import Status

ALL_CATEGORIES = 'all'
NEW_PRODUCT_WINDOW = timedelta(days=7)
LOW_STOCK_LIMIT = 5


class SortKey(models.TextChoices):
    DEFAULT = 'default', 'Default'
    PRICE_ASC = 'price-asc', 'Price: low to high'
    PRICE_DESC = 'price-desc', 'Price: high to low'
    NEWEST = 'newest', 'Newest first'
    DISCOUNT = 'discount', 'Biggest discount'
    RATING = 'rating', 'Top rated'


class StockBucket(models.TextChoices):
    ALL = 'all', 'All'
    IN_STOCK = 'inStock', 'In stock'
    LOW_STOCK = 'lowStock', 'Low stock'


@dataclass
class FilterConfig:
    """
    Filter and sort selection coming from the catalog controls.

    Range ordering (min <= max) is the caller's job; the pipeline applies
    the bounds as given. price_max=None means no upper bound.
    """
    search: str = ''
    category_id: str = ALL_CATEGORIES
    discount_only: bool = False
    new_only: bool = False
    price_min: int = 0
    price_max: Optional[int] = None
    discount_min: int = 0
    discount_max: int = 100
    min_rating: float = 0
    stock: str = StockBucket.ALL
    size: Optional[str] = None
    sort: str = SortKey.DEFAULT


@dataclass(frozen=True)
class DisplayProduct:
    """Display-ready view of a product."""
    id: str
    name: str
    effective_price: int
    original_price: int
    category_name: str
    discount_percent: int
    is_new: bool
    stock: int
    rating: float = 0
    size: str = ''
    image: str = ''
    description: str = ''
    created_at: Optional[datetime] = None

    @property
    def show_original_price(self) -> bool:
        """Strike-through retail price is shown only for discounted items."""
        return self.discount_percent > 0 or self.effective_price < self.original_price


def discount_percent(retail_price: int, discount_price: Optional[int], discount_active: bool) -> int:
    """
    Percent saved by the discount, rounded half away from zero.

    0 when the discount is inactive, missing or not below the retail price.
    """
    if not discount_active or discount_price is None or retail_price <= 0:
        return 0
    if discount_price > retail_price:
        return 0
    ratio = Decimal(discount_price) / Decimal(retail_price)
    percent = ((Decimal(1) - ratio) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return int(percent)


def effective_price(retail_price: int, discount_price: Optional[int], discount_active: bool) -> int:
    if discount_active and discount_price is not None and discount_price <= retail_price:
        return discount_price
    return retail_price


def is_new(created_at: Optional[datetime], now: datetime) -> bool:
    if created_at is None:
        return False
    return now - created_at <= NEW_PRODUCT_WINDOW


def matches_search(product, search: str) -> bool:
    """Empty search matches everything; otherwise title, then description."""
    needle = search.strip().casefold()
    if not needle:
        return True
    if needle in (product.title or '').casefold():
        return True
    return needle in (getattr(product, 'description', None) or '').casefold()


def matches_stock_bucket(stock: int, bucket: str) -> bool:
    if bucket == StockBucket.IN_STOCK:
        return stock > LOW_STOCK_LIMIT
    if bucket == StockBucket.LOW_STOCK:
        return 1 <= stock <= LOW_STOCK_LIMIT
    return True


def to_display(product, category_names: dict, now: datetime) -> DisplayProduct:
    """Derive the display view of one product."""
    images = getattr(product, 'images', None) or []
    category_id = getattr(product, 'category_id', None)
    return DisplayProduct(
        id=str(product.id),
        name=product.title,
        effective_price=effective_price(
            product.retail_price, product.discount_price, product.discount_active
        ),
        original_price=product.retail_price,
        category_name=category_names.get(str(category_id), '') if category_id is not None else '',
        discount_percent=discount_percent(
            product.retail_price, product.discount_price, product.discount_active
        ),
        is_new=is_new(product.created_at, now),
        stock=product.stock,
        rating=float(getattr(product, 'rating', 0) or 0),
        size=getattr(product, 'size', '') or '',
        image=images[0] if images else '',
        description=getattr(product, 'description', '') or '',
        created_at=product.created_at,
    )


def _sort(items: List[DisplayProduct], key: str) -> List[DisplayProduct]:
    # sorted() is stable, including with reverse=True, so ties keep input order
    if key == SortKey.PRICE_ASC:
        return sorted(items, key=lambda p: p.effective_price)
    if key == SortKey.PRICE_DESC:
        return sorted(items, key=lambda p: p.effective_price, reverse=True)
    if key == SortKey.NEWEST:
        oldest = datetime.min.replace(tzinfo=dt_timezone.utc)
        return sorted(items, key=lambda p: p.created_at or oldest, reverse=True)
    if key == SortKey.DISCOUNT:
        return sorted(items, key=lambda p: p.discount_percent, reverse=True)
    if key == SortKey.RATING:
        return sorted(items, key=lambda p: p.rating, reverse=True)
    return items


def project(
    raw_products: Iterable,
    categories: Iterable,
    config: FilterConfig,
    now: Optional[datetime] = None,
) -> List[DisplayProduct]:
    """
    Apply the filter configuration to the raw products.

    Args:
        raw_products: Products in source order (typically newest first)
        categories: Categories used for name lookup
        config: Filter and sort selection
        now: Evaluation time for the "new" flag (defaults to timezone.now())

    Returns:
        Ordered list of DisplayProduct; empty when nothing matches
    """
    if now is None:
        now = timezone.now()
    category_names = {str(c.id): c.name for c in categories}
    selected_category = str(config.category_id)

    candidates = []
    for product in raw_products:
        if product.status != Status.ACTIVE:
            continue
        if selected_category != ALL_CATEGORIES:
            if product.category_id is None or str(product.category_id) != selected_category:
                continue
        if not matches_search(product, config.search):
            continue
        candidates.append(to_display(product, category_names, now))

    result = []
    for item in candidates:
        if config.discount_only and not item.show_original_price:
            continue
        if config.new_only and not item.is_new:
            continue
        if item.effective_price < config.price_min:
            continue
        if config.price_max is not None and item.effective_price > config.price_max:
            continue
        if not config.discount_min <= item.discount_percent <= config.discount_max:
            continue
        if item.rating < config.min_rating:
            continue
        if not matches_stock_bucket(item.stock, config.stock):
            continue
        if config.size and item.size != config.size:
            continue
        result.append(item)

    return _sort(result, config.sort)


def autocomplete(raw_products: Iterable, query: str, limit: int = 10) -> list:
    """
    Search-box suggestions: active products whose title contains the query.

    Titles starting with the query come first; otherwise source order is kept.
    """
    needle = query.strip().casefold()
    if not needle:
        return []
    prefix, contains = [], []
    for product in raw_products:
        if product.status != Status.ACTIVE:
            continue
        title = (product.title or '').casefold()
        if title.startswith(needle):
            prefix.append(product)
        elif needle in title:
            contains.append(product)
    return (prefix + contains)[:limit]
