"""
Cart API Views.

The cart lives in the Django session of the client. Stock ceiling
rejections are not HTTP errors: the response carries the notices emitted
while handling the request and the unchanged cart.

Implements:
- GET /cart/ - Current cart
- DELETE /cart/ - Clear the cart
- POST /cart/items/ - Add one unit of a product
- PATCH /cart/items/{product_id}/ - Set a line's quantity
- DELETE /cart/items/{product_id}/ - Remove a line
"""
import logging

from django.shortcuts import get_object_or_404
from rest_framework.response import Response
from rest_framework.views import APIView

from catalog.models import Product, Status
from core.storage import CART_KEY, SessionBackend, StorageSlot
from .lines import CartItem
from .serializers import CartAddSerializer, CartQuantitySerializer, CartSerializer
from .services import Cart
from .signals import send_cart_notification

logger = logging.getLogger(__name__)


def session_cart(request, notices=None) -> Cart:
    """
    Build the cart stored in the request's session.

    Notices are appended to ``notices`` (when given) and broadcast
    through the cart_notification signal.
    """
    def notify(notice):
        if notices is not None:
            notices.append(notice)
        send_cart_notification(notice, sender=Cart)

    slot = StorageSlot(SessionBackend(request.session), CART_KEY)
    return Cart(slot, notify=notify)


class CartMixin:
    def cart_response(self, cart, notices, status=200):
        serializer = CartSerializer(cart, context={'notices': notices})
        return Response(serializer.data, status=status)


class CartView(CartMixin, APIView):
    """
    GET: Current cart with totals
    DELETE: Clear the cart
    """

    def get(self, request):
        notices = []
        return self.cart_response(session_cart(request, notices), notices)

    def delete(self, request):
        notices = []
        cart = session_cart(request, notices)
        cart.clear_cart()
        return self.cart_response(cart, notices)


class CartItemListView(CartMixin, APIView):
    """
    POST: Add one unit of an active product.

    Request Body:
    {
        "product_id": 7
    }
    """

    def post(self, request):
        serializer = CartAddSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        product = get_object_or_404(
            Product,
            pk=serializer.validated_data['product_id'],
            status=Status.ACTIVE,
        )
        notices = []
        cart = session_cart(request, notices)
        cart.add_to_cart(CartItem.from_product(product))
        return self.cart_response(cart, notices)


class CartItemDetailView(CartMixin, APIView):
    """
    PATCH: Set quantity ({"quantity": 3}); below 1 removes the line
    DELETE: Remove the line
    """

    def patch(self, request, product_id):
        serializer = CartQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        notices = []
        cart = session_cart(request, notices)
        cart.update_quantity(str(product_id), serializer.validated_data['quantity'])
        return self.cart_response(cart, notices)

    def delete(self, request, product_id):
        notices = []
        cart = session_cart(request, notices)
        cart.remove_from_cart(str(product_id))
        return self.cart_response(cart, notices)
