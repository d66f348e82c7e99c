"""
Order Models - Orders placed from the storefront cart.

Status is a plain field updated by staff; there is no automatic
transition logic:
    NEW -> PROCESSING -> SHIPPED -> DELIVERED, or CANCELLED
"""
from django.db import models
from django.core.validators import MinValueValidator

from catalog.models import Product


class Order(models.Model):
    """
    Customer order with delivery details.

    Customers find their orders by phone number; phone is stored
    normalised (digits with a leading '+').
    """

    class Status(models.TextChoices):
        NEW = 'new', 'New'
        PROCESSING = 'processing', 'Processing'
        SHIPPED = 'shipped', 'Shipped'
        DELIVERED = 'delivered', 'Delivered'
        CANCELLED = 'cancelled', 'Cancelled'

    customer_name = models.CharField(max_length=150)
    phone = models.CharField(
        max_length=20,
        db_index=True,
        help_text="Normalised phone number used for order lookup"
    )
    region = models.CharField(max_length=100)
    city = models.CharField(max_length=100)
    address = models.CharField(max_length=300)
    comment = models.TextField(blank=True, default='')
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.NEW,
        db_index=True,
        help_text="Current order status"
    )
    total_price = models.PositiveIntegerField(
        default=0,
        help_text="Order total in so'm"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Order'
        verbose_name_plural = 'Orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['phone', 'created_at'], name='order_phone_created_idx'),
        ]

    def __str__(self):
        return f"Order #{self.id} - {self.customer_name} ({self.status})"

    @property
    def item_count(self) -> int:
        return self.items.count()


class OrderItem(models.Model):
    """
    A cart line frozen into an order.

    Title, price and image are copied so the order survives product edits
    and deletion.
    """
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items',
        help_text="Parent order"
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='order_items',
        help_text="Ordered product, if it still exists"
    )
    product_title = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Quantity ordered"
    )
    price_at_moment = models.PositiveIntegerField(
        help_text="Unit price in so'm when the order was placed"
    )
    image = models.URLField(blank=True, default='')

    class Meta:
        verbose_name = 'Order Item'
        verbose_name_plural = 'Order Items'
        ordering = ['id']

    def __str__(self):
        return f"{self.quantity}x {self.product_title} @ {self.price_at_moment}"

    @property
    def subtotal(self) -> int:
        return self.quantity * self.price_at_moment
