"""
Serializers for the session cart API.
"""
from rest_framework import serializers


class CartLineSerializer(serializers.Serializer):
    """Read-only view of a CartLine."""
    product_id = serializers.CharField()
    title = serializers.CharField()
    unit_price = serializers.IntegerField()
    original_unit_price = serializers.IntegerField(allow_null=True)
    image_url = serializers.CharField(allow_blank=True)
    quantity = serializers.IntegerField()
    stock_ceiling = serializers.IntegerField()
    subtotal = serializers.IntegerField()


class NoticeSerializer(serializers.Serializer):
    kind = serializers.CharField()
    message = serializers.CharField()
    product_id = serializers.CharField(allow_null=True)


class CartSerializer(serializers.Serializer):
    """
    Cart snapshot plus the notices produced while handling the request.

    Serializes a Cart instance; notices are passed via context.
    """
    items = CartLineSerializer(many=True)
    total_items = serializers.IntegerField()
    total_price = serializers.IntegerField()
    notices = serializers.SerializerMethodField()

    def get_notices(self, obj):
        return NoticeSerializer(self.context.get('notices', []), many=True).data


class CartAddSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)


class CartQuantitySerializer(serializers.Serializer):
    # Zero or negative removes the line
    quantity = serializers.IntegerField()
