"""
Serializers for order models.
"""
from rest_framework import serializers
from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    """Serializer for OrderItem with its derived subtotal."""
    subtotal = serializers.IntegerField(read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'product_title', 'quantity', 'price_at_moment', 'subtotal', 'image']


class OrderSerializer(serializers.ModelSerializer):
    """
    Serializer for Order model with nested items.
    Uses prefetch_related for optimized queries.
    """
    items = OrderItemSerializer(many=True, read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'customer_name', 'phone', 'region', 'city', 'address',
            'comment', 'status', 'status_label', 'total_price', 'items',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class CheckoutSerializer(serializers.Serializer):
    """
    Serializer for POST /checkout/

    Request format:
    {
        "customer_name": "Aziza Karimova",
        "phone": "+998 90 123 45 67",
        "region": "Toshkent",
        "city": "Chilonzor",
        "address": "12-uy, 5-xonadon",
        "comment": ""
    }
    """
    customer_name = serializers.CharField(max_length=150)
    phone = serializers.CharField(max_length=32)
    region = serializers.CharField(max_length=100)
    city = serializers.CharField(max_length=100)
    address = serializers.CharField(max_length=300)
    comment = serializers.CharField(required=False, allow_blank=True, default='')
