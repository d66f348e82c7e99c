"""
Tests for the shopping cart.

Test Cases:
1. Stock ceiling enforced on add and quantity update
2. Totals and removal
3. Write-through persistence and hydration
4. Malformed stored data and storage failures
5. Notifications through the cart_notification signal
6. Cart API endpoints
"""
import json
from unittest.mock import patch

from django.test import SimpleTestCase, override_settings
from rest_framework.test import APITestCase

from catalog.models import Product, Status
from core.storage import CART_KEY, MemoryBackend, StorageSlot
from .lines import CartItem, CartLine
from .services import Cart
from .signals import NoticeKind, cart_notification


class FailingSlot:
    """Slot whose storage is unavailable."""

    def load(self):
        raise OSError("storage unavailable")

    def save(self, data):
        raise OSError("storage unavailable")


class CartStateTestCase(SimpleTestCase):
    """Test cases for cart state transitions."""

    def setUp(self):
        self.backend = MemoryBackend()
        self.slot = StorageSlot(self.backend, CART_KEY)
        self.notices = []
        self.cart = Cart(self.slot, notify=self.notices.append)
        self.soap = CartItem('1', 'Hand Soap', unit_price=8000, stock_ceiling=2)
        self.powder = CartItem(
            '2', 'Washing Powder', unit_price=38000, stock_ceiling=10, original_unit_price=45000
        )

    def test_add_respects_stock_ceiling(self):
        """
        Test: Adding past the stock ceiling is rejected.

        Given: A product with 2 units in stock
        When: Adding it three times
        Then: Quantity stops at 2 and the third add emits an error notice
        """
        self.cart.add_to_cart(self.soap)
        self.cart.add_to_cart(self.soap)
        result = self.cart.add_to_cart(self.soap)

        self.assertIsNone(result)
        self.assertEqual(self.cart.get('1').quantity, 2)
        self.assertEqual(
            [n.kind for n in self.notices],
            [NoticeKind.SUCCESS, NoticeKind.SUCCESS, NoticeKind.ERROR],
        )
        self.assertEqual(self.notices[0].message, 'Hand Soap added to cart')
        self.assertEqual(self.notices[1].message, 'Hand Soap quantity increased')
        self.assertEqual(self.notices[2].message, 'Insufficient stock for Hand Soap')

    def test_out_of_stock_item_not_added(self):
        empty = CartItem('3', 'Sponge', unit_price=2000, stock_ceiling=0)
        self.assertIsNone(self.cart.add_to_cart(empty))
        self.assertTrue(self.cart.is_empty)
        self.assertEqual(self.notices[0].kind, NoticeKind.ERROR)

    def test_add_checks_current_stock_of_item(self):
        """
        Test: The incoming item's stock decides, not the stored snapshot.

        Given: A line added while 5 units were in stock
        When: Adding again after stock dropped to 1
        Then: The add is rejected and the quantity stays at 1
        """
        self.cart.add_to_cart(CartItem('1', 'Hand Soap', unit_price=8000, stock_ceiling=5))
        result = self.cart.add_to_cart(CartItem('1', 'Hand Soap', unit_price=8000, stock_ceiling=1))

        self.assertIsNone(result)
        self.assertEqual(self.cart.get('1').quantity, 1)
        self.assertEqual(self.cart.get('1').stock_ceiling, 5)
        self.assertEqual([n.kind for n in self.notices], [NoticeKind.SUCCESS, NoticeKind.ERROR])

    def test_add_refreshes_stock_ceiling(self):
        self.cart.add_to_cart(self.soap)
        self.cart.add_to_cart(self.soap)
        restocked = CartItem('1', 'Hand Soap', unit_price=8000, stock_ceiling=6)

        line = self.cart.add_to_cart(restocked)

        self.assertEqual(line.quantity, 3)
        self.assertEqual(line.stock_ceiling, 6)
        self.cart.update_quantity('1', 6)
        self.assertEqual(self.cart.get('1').quantity, 6)

        restored = Cart(self.slot, notify=lambda notice: None)
        self.assertEqual(restored.get('1').stock_ceiling, 6)

    def test_update_quantity(self):
        self.cart.add_to_cart(self.powder)

        self.cart.update_quantity('2', 7)
        self.assertEqual(self.cart.get('2').quantity, 7)

        self.cart.update_quantity('2', 11)
        self.assertEqual(self.cart.get('2').quantity, 7)
        self.assertEqual(self.notices[-1].kind, NoticeKind.ERROR)

        self.cart.update_quantity('2', 0)
        self.assertNotIn('2', self.cart)
        self.assertEqual(self.notices[-1].message, 'Washing Powder removed from cart')

    def test_update_unknown_product_is_ignored(self):
        self.assertIsNone(self.cart.update_quantity('99', 3))
        self.assertTrue(self.cart.is_empty)
        self.assertEqual(self.notices, [])

    def test_remove_absent_product_is_silent(self):
        self.cart.remove_from_cart('99')
        self.assertEqual(self.notices, [])

    def test_totals(self):
        self.cart.add_to_cart(self.soap)
        self.cart.add_to_cart(self.soap)
        self.cart.add_to_cart(self.powder)

        self.assertEqual(self.cart.total_items, 3)
        self.assertEqual(self.cart.total_price, 2 * 8000 + 38000)
        self.assertEqual(len(self.cart), 2)
        self.assertEqual([line.product_id for line in self.cart], ['1', '2'])

    def test_clear_cart(self):
        self.cart.add_to_cart(self.soap)
        self.cart.clear_cart()

        self.assertTrue(self.cart.is_empty)
        self.assertEqual(self.cart.total_price, 0)
        self.assertEqual(self.notices[-1].message, 'Cart cleared')
        self.assertEqual(json.loads(self.slot.load()), [])

    def test_every_mutation_is_written_through(self):
        """A fresh cart over the same storage sees the same lines."""
        self.cart.add_to_cart(self.soap)
        self.cart.add_to_cart(self.powder)
        self.cart.update_quantity('2', 4)

        restored = Cart(self.slot, notify=lambda notice: None)

        self.assertEqual(restored.items, self.cart.items)
        self.assertEqual(restored.get('2').original_unit_price, 45000)
        self.assertEqual(restored.total_price, 8000 + 4 * 38000)

    def test_malformed_storage_starts_empty(self):
        stored = [
            b'not json',
            b'{"product_id": "1"}',
            json.dumps([{'product_id': '1', 'title': 'Soap'}]).encode(),
            json.dumps([{
                'product_id': '1', 'title': 'Soap', 'unit_price': 100,
                'quantity': 5, 'stock_ceiling': 2,
            }]).encode(),
            json.dumps([{
                'product_id': '1', 'title': 'Soap', 'unit_price': 'free',
                'quantity': 1, 'stock_ceiling': 2,
            }]).encode(),
            b'\xff\xfe',
            b'[' * 100000,
        ]
        for raw in stored:
            with self.subTest(raw=raw[:40]):
                backend = MemoryBackend({CART_KEY: raw})
                with self.assertLogs('cart.services', level='WARNING'):
                    cart = Cart(StorageSlot(backend, CART_KEY), notify=lambda notice: None)
                self.assertTrue(cart.is_empty)

    def test_storage_failure_keeps_cart_in_memory(self):
        with self.assertLogs('cart.services', level='WARNING'):
            cart = Cart(FailingSlot(), notify=self.notices.append)

        with self.assertLogs('cart.services', level='ERROR'):
            cart.add_to_cart(self.soap)

        self.assertEqual(cart.get('1').quantity, 1)
        self.assertEqual(self.notices[-1].kind, NoticeKind.SUCCESS)

    def test_default_notify_sends_signal(self):
        received = []

        def receiver(sender, **kwargs):
            received.append(kwargs)

        cart_notification.connect(receiver)
        try:
            cart = Cart(StorageSlot(MemoryBackend(), CART_KEY))
            cart.add_to_cart(self.soap)
        finally:
            cart_notification.disconnect(receiver)

        self.assertEqual(len(received), 1)
        self.assertEqual(received[0]['kind'], NoticeKind.SUCCESS)
        self.assertEqual(received[0]['product_id'], '1')

    def test_cart_item_from_product(self):
        product = Product(
            id=5, title='Washing Powder', retail_price=45000, discount_price=38000,
            discount_active=True, stock=4, images=['https://cdn.example.com/p.jpg'],
        )
        item = CartItem.from_product(product)

        self.assertEqual(item.product_id, '5')
        self.assertEqual(item.unit_price, 38000)
        self.assertEqual(item.original_unit_price, 45000)
        self.assertEqual(item.stock_ceiling, 4)
        self.assertEqual(item.image_url, 'https://cdn.example.com/p.jpg')

        product.discount_active = False
        item = CartItem.from_product(product)
        self.assertEqual(item.unit_price, 45000)
        self.assertIsNone(item.original_unit_price)

    def test_line_rejects_boolean_amounts(self):
        with self.assertRaises(ValueError):
            CartLine.from_dict({
                'product_id': '1', 'title': 'Soap', 'unit_price': True,
                'quantity': 1, 'stock_ceiling': 2,
            })


@override_settings(RATE_LIMIT_ENABLED=False)
class CartAPITestCase(APITestCase):
    """Test cases for cart endpoints."""

    def setUp(self):
        self.soap = Product.objects.create(
            title='Hand Soap', sku='SOAP-1', retail_price=8000, stock=2,
        )
        self.hidden = Product.objects.create(
            title='Old Soap', sku='SOAP-0', retail_price=5000, stock=10, status=Status.INACTIVE,
        )

    def test_empty_cart(self):
        response = self.client.get('/api/cart/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['items'], [])
        self.assertEqual(response.data['total_price'], 0)

    def test_add_until_stock_runs_out(self):
        self.client.post('/api/cart/items/', {'product_id': self.soap.id}, format='json')
        self.client.post('/api/cart/items/', {'product_id': self.soap.id}, format='json')
        response = self.client.post('/api/cart/items/', {'product_id': self.soap.id}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['items'][0]['quantity'], 2)
        self.assertEqual(response.data['total_price'], 16000)
        self.assertEqual(response.data['notices'][0]['kind'], 'error')

        # The session keeps the cart between requests
        response = self.client.get('/api/cart/')
        self.assertEqual(response.data['total_items'], 2)
        self.assertEqual(response.data['notices'], [])

    def test_add_uses_current_product_stock(self):
        self.client.post('/api/cart/items/', {'product_id': self.soap.id}, format='json')
        Product.objects.filter(pk=self.soap.pk).update(stock=1)

        response = self.client.post('/api/cart/items/', {'product_id': self.soap.id}, format='json')

        self.assertEqual(response.data['items'][0]['quantity'], 1)
        self.assertEqual(response.data['notices'][0]['kind'], 'error')

    def test_inactive_product_not_found(self):
        response = self.client.post('/api/cart/items/', {'product_id': self.hidden.id}, format='json')
        self.assertEqual(response.status_code, 404)

    def test_update_and_remove_line(self):
        self.client.post('/api/cart/items/', {'product_id': self.soap.id}, format='json')
        url = f'/api/cart/items/{self.soap.id}/'

        response = self.client.patch(url, {'quantity': 2}, format='json')
        self.assertEqual(response.data['items'][0]['subtotal'], 16000)

        response = self.client.delete(url)
        self.assertEqual(response.data['items'], [])
        self.assertEqual(response.data['notices'][0]['message'], 'Hand Soap removed from cart')

    def test_clear(self):
        self.client.post('/api/cart/items/', {'product_id': self.soap.id}, format='json')
        response = self.client.delete('/api/cart/')
        self.assertEqual(response.data['items'], [])

    def test_invalid_payload(self):
        response = self.client.post('/api/cart/items/', {'product_id': 'abc'}, format='json')
        self.assertEqual(response.status_code, 400)

    @patch('cart.views.send_cart_notification')
    def test_notices_broadcast(self, mock_send):
        self.client.post('/api/cart/items/', {'product_id': self.soap.id}, format='json')
        mock_send.assert_called_once()
