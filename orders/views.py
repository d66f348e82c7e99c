"""
Order API Views.

Implements:
- POST /checkout/ - Place an order from the session cart
- GET /orders/?phone= - Orders placed with a phone number
"""
import logging
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from cart.views import session_cart
from core.preferences import SitePreferences
from core.storage import SessionBackend
from .serializers import CheckoutSerializer, OrderSerializer
from .services import checkout, orders_for_phone, CheckoutError

logger = logging.getLogger(__name__)


class CheckoutView(APIView):
    """
    POST: Create an order from the session cart.

    Returns:
        - 201: Order created, cart cleared
        - 400: Validation error, empty cart or insufficient stock
    """

    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cart = session_cart(request)
        try:
            order = checkout(cart, serializer.validated_data)
        except CheckoutError as e:
            logger.warning(f"Checkout failed: {e}")
            return Response(
                {'error': 'Checkout Error', 'detail': str(e)},
                status=status.HTTP_400_BAD_REQUEST
            )

        SitePreferences(SessionBackend(request.session)).remember_order_phone(order.phone)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderLookupView(APIView):
    """
    GET: Orders placed with a phone number.

    Query Parameters:
        - phone: Phone number; defaults to the last one used at checkout
    """

    def get(self, request):
        preferences = SitePreferences(SessionBackend(request.session))
        phone = request.query_params.get('phone', '').strip() or preferences.last_order_phone
        if not phone:
            return Response(
                {'error': 'Validation Error', 'detail': 'Phone number is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        preferences.remember_order_phone(phone)
        orders = orders_for_phone(phone)
        return Response({
            'phone': phone,
            'orders': OrderSerializer(orders, many=True).data,
        })
