"""
Tests for checkout and order lookup.

Test Cases:
1. Order created with sufficient stock, stock deducted, cart cleared
2. Checkout rejected with insufficient stock, nothing written
3. Unavailable products and invalid customer details
4. Notification queued only after commit
5. Notification task output
6. Checkout and lookup API endpoints
"""
from unittest.mock import patch

from django.test import TestCase, override_settings
from rest_framework.test import APITestCase

from cart.lines import CartItem
from cart.services import Cart
from catalog.models import Product, Status
from core.storage import CART_KEY, MemoryBackend, StorageSlot
from orders.models import Order, OrderItem
from orders.services import CheckoutError, checkout, normalize_phone, orders_for_phone
from orders.tasks import format_order_message, send_order_notification

CUSTOMER = {
    'customer_name': 'Aziza Karimova',
    'phone': '+998 (90) 123-45-67',
    'region': 'Toshkent',
    'city': 'Chilonzor',
    'address': '12-uy, 5-xonadon',
}


class CheckoutTestCase(TestCase):
    """Test cases for cart checkout."""

    def setUp(self):
        self.soap = Product.objects.create(
            title='Hand Soap', sku='SOAP-1', retail_price=8000, stock=10,
        )
        self.powder = Product.objects.create(
            title='Washing Powder', sku='POWDER-3', retail_price=45000,
            discount_price=38000, discount_active=True, stock=3,
        )
        self.notices = []
        self.cart = Cart(StorageSlot(MemoryBackend(), CART_KEY), notify=self.notices.append)

    def fill_cart(self, product, quantity):
        self.cart.add_to_cart(CartItem.from_product(product))
        self.cart.update_quantity(str(product.id), quantity)

    @patch('orders.services._queue_notification')
    def test_order_created_with_sufficient_stock(self, mock_queue):
        """
        Test: Checkout turns the cart into an order.

        Given: 4 soaps and 3 discounted powders in the cart
        When: Checking out
        Then: Order total uses cart prices, stock is deducted, cart is cleared
        """
        self.fill_cart(self.soap, 4)
        self.fill_cart(self.powder, 3)

        order = checkout(self.cart, CUSTOMER)

        self.assertEqual(order.status, Order.Status.NEW)
        self.assertEqual(order.phone, '+998901234567')
        self.assertEqual(order.total_price, 4 * 8000 + 3 * 38000)
        self.assertEqual(order.items.count(), 2)
        powder_item = order.items.get(product=self.powder)
        self.assertEqual(powder_item.price_at_moment, 38000)
        self.assertEqual(powder_item.subtotal, 114000)

        self.soap.refresh_from_db()
        self.powder.refresh_from_db()
        self.assertEqual(self.soap.stock, 6)
        self.assertEqual(self.powder.stock, 0)

        self.assertTrue(self.cart.is_empty)
        self.assertEqual(self.notices[-1].message, 'Cart cleared')

    def test_rejected_with_insufficient_stock(self):
        """
        Test: Nothing is written when stock ran out after adding to cart.

        Given: 3 powders in the cart, stock since dropped to 1
        When: Checking out
        Then: CheckoutError, no order, stock and cart unchanged
        """
        self.fill_cart(self.soap, 2)
        self.fill_cart(self.powder, 3)
        Product.objects.filter(pk=self.powder.pk).update(stock=1)

        with self.assertRaises(CheckoutError) as context:
            checkout(self.cart, CUSTOMER)

        self.assertIn('Insufficient stock', str(context.exception))
        self.assertIn('Washing Powder', str(context.exception))
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)
        self.soap.refresh_from_db()
        self.assertEqual(self.soap.stock, 10)
        self.assertEqual(self.cart.total_items, 5)

    def test_exact_stock(self):
        self.fill_cart(self.powder, 3)
        with patch('orders.services._queue_notification'):
            checkout(self.cart, CUSTOMER)
        self.powder.refresh_from_db()
        self.assertEqual(self.powder.stock, 0)

    def test_inactive_product_rejected(self):
        self.fill_cart(self.soap, 1)
        Product.objects.filter(pk=self.soap.pk).update(status=Status.INACTIVE)

        with self.assertRaises(CheckoutError) as context:
            checkout(self.cart, CUSTOMER)

        self.assertIn('no longer available', str(context.exception))
        self.assertFalse(self.cart.is_empty)

    def test_deleted_product_rejected(self):
        self.fill_cart(self.soap, 1)
        self.soap.delete()

        with self.assertRaises(CheckoutError):
            checkout(self.cart, CUSTOMER)

    def test_empty_cart_rejected(self):
        with self.assertRaises(CheckoutError) as context:
            checkout(self.cart, CUSTOMER)
        self.assertIn('empty', str(context.exception))

    def test_invalid_customer_details(self):
        self.fill_cart(self.soap, 1)
        for field, value in [('customer_name', '  '), ('address', ''), ('phone', '12-34')]:
            with self.subTest(field=field):
                with self.assertRaises(CheckoutError):
                    checkout(self.cart, {**CUSTOMER, field: value})
        self.assertEqual(Order.objects.count(), 0)

    def test_notification_queued_after_commit(self):
        self.fill_cart(self.soap, 1)

        with patch('orders.tasks.send_order_notification.delay') as mock_delay:
            with self.captureOnCommitCallbacks(execute=True) as callbacks:
                order = checkout(self.cart, CUSTOMER)

        self.assertEqual(len(callbacks), 1)
        mock_delay.assert_called_once_with(order.id)

    def test_queue_failure_does_not_fail_checkout(self):
        self.fill_cart(self.soap, 1)

        with patch('orders.tasks.send_order_notification.delay', side_effect=ConnectionError('broker down')):
            with self.assertLogs('orders.services', level='ERROR'):
                with self.captureOnCommitCallbacks(execute=True):
                    order = checkout(self.cart, CUSTOMER)

        self.assertTrue(Order.objects.filter(pk=order.pk).exists())

    def test_normalize_phone(self):
        self.assertEqual(normalize_phone('+998 (90) 123-45-67'), '+998901234567')
        self.assertEqual(normalize_phone('998901234567'), '+998901234567')
        self.assertEqual(normalize_phone('no digits'), '')


class OrderLookupTestCase(TestCase):
    """Test cases for finding orders by phone and the notification task."""

    def setUp(self):
        self.first = Order.objects.create(total_price=8000, **{**CUSTOMER, 'phone': '+998901234567'})
        self.second = Order.objects.create(total_price=16000, **{**CUSTOMER, 'phone': '+998901234567'})
        Order.objects.create(total_price=500, **{**CUSTOMER, 'phone': '+998971112233'})
        OrderItem.objects.create(
            order=self.second, product_title='Hand Soap', quantity=2, price_at_moment=8000,
        )

    def test_orders_for_phone_any_format(self):
        orders = list(orders_for_phone('+998 90 123 45 67'))
        self.assertEqual({o.id for o in orders}, {self.first.id, self.second.id})

    def test_orders_for_blank_phone(self):
        self.assertEqual(list(orders_for_phone('')), [])

    def test_format_order_message(self):
        message = format_order_message(self.second)
        self.assertIn(f'Order: #{self.second.id}', message)
        self.assertIn("1. Hand Soap x2 = 16,000 so'm", message)
        self.assertIn("Total: 16,000 so'm", message)
        self.assertNotIn('Comment:', message)

    def test_notification_task(self):
        result = send_order_notification(self.second.id)
        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['order_id'], self.second.id)

    def test_notification_task_skips_cancelled(self):
        self.first.status = Order.Status.CANCELLED
        self.first.save()
        self.assertEqual(send_order_notification(self.first.id)['status'], 'skipped')

    def test_notification_task_missing_order(self):
        self.assertEqual(send_order_notification(99999)['status'], 'error')


@override_settings(RATE_LIMIT_ENABLED=False)
class OrderAPITestCase(APITestCase):
    """Test cases for checkout and lookup endpoints."""

    def setUp(self):
        self.soap = Product.objects.create(
            title='Hand Soap', sku='SOAP-1', retail_price=8000, stock=5,
        )

    def add_soap(self):
        self.client.post('/api/cart/items/', {'product_id': self.soap.id}, format='json')

    @patch('orders.services._queue_notification')
    def test_checkout_then_lookup_by_remembered_phone(self, mock_queue):
        self.add_soap()
        self.add_soap()

        response = self.client.post('/api/checkout/', CUSTOMER, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['total_price'], 16000)
        self.assertEqual(response.data['status'], 'new')
        self.assertEqual(response.data['items'][0]['quantity'], 2)

        cart = self.client.get('/api/cart/')
        self.assertEqual(cart.data['items'], [])

        lookup = self.client.get('/api/orders/')
        self.assertEqual(lookup.status_code, 200)
        self.assertEqual(lookup.data['phone'], '+998901234567')
        self.assertEqual(len(lookup.data['orders']), 1)

        preferences = self.client.get('/api/preferences/')
        self.assertEqual(preferences.data['last_order_phone'], '+998901234567')

    def test_checkout_empty_cart(self):
        response = self.client.post('/api/checkout/', CUSTOMER, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error'], 'Checkout Error')

    def test_checkout_missing_field(self):
        self.add_soap()
        payload = {k: v for k, v in CUSTOMER.items() if k != 'address'}
        response = self.client.post('/api/checkout/', payload, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('address', response.data)

    def test_lookup_requires_phone(self):
        response = self.client.get('/api/orders/')
        self.assertEqual(response.status_code, 400)

    def test_lookup_by_query_phone(self):
        Order.objects.create(total_price=8000, **{**CUSTOMER, 'phone': '+998901234567'})
        response = self.client.get('/api/orders/', {'phone': '998901234567'})
        self.assertEqual(len(response.data['orders']), 1)
