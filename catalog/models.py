"""
Catalog Models - Core data entities for the storefront catalog.

Models:
    - Category: Product grouping with its own display order
    - Product: Items available for sale, with optional discount pricing

Prices are integers in the smallest currency unit (so'm).
"""
import re

from django.db import models
from django.core.validators import MaxValueValidator, MinValueValidator


class Status(models.TextChoices):
    ACTIVE = 'active', 'Active'
    INACTIVE = 'inactive', 'Inactive'


def generate_slug(name: str) -> str:
    """Lowercase, keep [a-z0-9 -], collapse whitespace and dashes."""
    slug = re.sub(r'[^a-z0-9\s-]', '', name.lower())
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug)
    return slug.strip('-')


class Category(models.Model):
    """
    Product category for organizing the catalog.

    Displayed by sort_order; ties keep insertion order.
    """
    name = models.CharField(
        max_length=100,
        help_text="Category display name"
    )
    slug = models.SlugField(
        max_length=120,
        unique=True,
        blank=True,
        help_text="Unique URL slug, generated from the name when blank"
    )
    description = models.TextField(blank=True, default='')
    image = models.URLField(blank=True, default='')
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True
    )
    sort_order = models.IntegerField(
        default=0,
        help_text="Display position, lowest first"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Category'
        verbose_name_plural = 'Categories'
        ordering = ['sort_order', 'id']

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = generate_slug(self.name)
        super().save(*args, **kwargs)

    @property
    def is_active(self) -> bool:
        return self.status == Status.ACTIVE


class Product(models.Model):
    """
    Product entity representing items available for sale.
    """
    title = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Product title for display and search"
    )
    description = models.TextField(
        blank=True,
        default='',
        help_text="Optional product description"
    )
    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='products',
        help_text="Product category"
    )
    sku = models.CharField(
        max_length=64,
        unique=True,
        help_text="Stock keeping unit"
    )
    retail_price = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Retail price in so'm"
    )
    wholesale_price = models.PositiveIntegerField(
        default=0,
        help_text="Wholesale price in so'm (back-office only)"
    )
    discount_price = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Discounted price in so'm"
    )
    discount_active = models.BooleanField(
        default=False,
        help_text="Whether discount_price is currently charged"
    )
    stock = models.PositiveIntegerField(
        default=0,
        help_text="Units available for sale"
    )
    images = models.JSONField(
        default=list,
        blank=True,
        help_text="Ordered list of image URLs"
    )
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True
    )
    rating = models.FloatField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(5)],
        help_text="Average customer rating, 0-5"
    )
    size = models.CharField(
        max_length=32,
        blank=True,
        default='',
        help_text="Size or volume tag, e.g. '500ml'"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['category', 'status'], name='product_category_status_idx'),
            models.Index(fields=['status', 'created_at'], name='product_status_created_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.effective_price} so'm)"

    @property
    def has_discount(self) -> bool:
        """A discount counts only when active, present and below retail."""
        return (
            self.discount_active
            and self.discount_price is not None
            and self.discount_price <= self.retail_price
        )

    @property
    def effective_price(self) -> int:
        return self.discount_price if self.has_discount else self.retail_price

    @property
    def is_active(self) -> bool:
        return self.status == Status.ACTIVE
