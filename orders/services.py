"""
Order Service Layer - Checkout of the storefront cart.

Implements fail-fast checkout:
1. Validate customer details and a non-empty cart
2. Lock the ordered product rows with select_for_update()
3. Validate ALL products still exist, are active and have enough stock
4. If ANY check fails: raise CheckoutError, nothing is written
5. If ALL pass: deduct stock, create the order, clear the cart and queue
   the staff notification
"""
import logging
import re
from typing import Dict, List

from django.db import transaction

from catalog.models import Product, Status
from .models import Order, OrderItem

logger = logging.getLogger(__name__)

REQUIRED_CUSTOMER_FIELDS = ('customer_name', 'phone', 'region', 'city', 'address')


class CheckoutError(Exception):
    """Raised when the cart or the customer details cannot be ordered."""
    pass


def normalize_phone(phone: str) -> str:
    """
    Keep digits only and prefix '+'.

    '+998 (90) 123-45-67' -> '+998901234567'
    """
    digits = re.sub(r'\D', '', phone or '')
    return f"+{digits}" if digits else ''


def validate_customer(customer: Dict) -> Dict:
    """
    Validate checkout customer details.

    Returns:
        Cleaned copy with stripped values and a normalised phone

    Raises:
        CheckoutError: If a required field is missing or the phone is invalid
    """
    cleaned = {}
    for field in REQUIRED_CUSTOMER_FIELDS:
        value = str(customer.get(field) or '').strip()
        if not value:
            raise CheckoutError(f"Missing required field '{field}'")
        cleaned[field] = value

    cleaned['phone'] = normalize_phone(cleaned['phone'])
    if not 9 <= len(cleaned['phone']) - 1 <= 15:
        raise CheckoutError("Phone number must contain 9 to 15 digits")

    cleaned['comment'] = str(customer.get('comment') or '').strip()
    return cleaned


def checkout(cart, customer: Dict) -> Order:
    """
    Turn the cart into an order.

    Unit prices are the ones snapshotted in the cart. On success the cart
    is cleared; on failure the cart and the database are left untouched.

    Args:
        cart: cart.services.Cart to order
        customer: Dict with customer_name, phone, region, city, address
            and optional comment

    Returns:
        The created Order

    Raises:
        CheckoutError: If validation fails
    """
    details = validate_customer(customer)
    lines = cart.items
    if not lines:
        raise CheckoutError("Cart is empty")

    with transaction.atomic():
        product_ids = [int(line.product_id) for line in lines if line.product_id.isdigit()]

        # Lock product rows; order by id to prevent deadlocks
        products = {
            str(p.id): p for p in Product.objects.select_for_update().filter(
                id__in=product_ids, status=Status.ACTIVE
            ).order_by('id')
        }
        missing = [line.title for line in lines if line.product_id not in products]
        if missing:
            raise CheckoutError(f"Products no longer available: {', '.join(missing)}")

        # FAIL-FAST: check all stock before any deduction
        insufficient: List[str] = []
        for line in lines:
            product = products[line.product_id]
            if product.stock < line.quantity:
                insufficient.append(
                    f"{line.title}: requested {line.quantity}, available {product.stock}"
                )
        if insufficient:
            logger.warning(f"Checkout rejected: insufficient stock ({len(insufficient)} items)")
            raise CheckoutError(f"Insufficient stock: {'; '.join(insufficient)}")

        order = Order.objects.create(total_price=cart.total_price, **details)

        order_items = []
        for line in lines:
            product = products[line.product_id]
            product.stock -= line.quantity
            product.save(update_fields=['stock', 'updated_at'])
            order_items.append(OrderItem(
                order=order,
                product=product,
                product_title=line.title,
                quantity=line.quantity,
                price_at_moment=line.unit_price,
                image=line.image_url,
            ))
        OrderItem.objects.bulk_create(order_items)

        logger.info(
            f"Order #{order.id} created: {len(order_items)} items, "
            f"total {order.total_price} so'm"
        )

        transaction.on_commit(lambda: _queue_notification(order.id))

    cart.clear_cart()
    return order


def _queue_notification(order_id: int) -> None:
    try:
        from .tasks import send_order_notification
        send_order_notification.delay(order_id)
        logger.info(f"Queued notification for order #{order_id}")
    except Exception as e:
        # Don't fail the order if task queuing fails
        logger.error(f"Failed to queue order notification: {e}")


def orders_for_phone(phone: str):
    """Orders placed with a phone number, newest first."""
    normalized = normalize_phone(phone)
    if not normalized:
        return Order.objects.none()
    return Order.objects.filter(phone=normalized).prefetch_related('items').order_by('-created_at')
