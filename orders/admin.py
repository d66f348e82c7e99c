"""
Django Admin configuration for order models.
"""
from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product', 'product_title', 'quantity', 'price_at_moment', 'subtotal']
    can_delete = False

    def subtotal(self, obj):
        return f"{obj.subtotal:,} so'm"
    subtotal.short_description = 'Subtotal'


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer_name', 'phone', 'status', 'total_price', 'item_count', 'created_at']
    list_filter = ['status', 'region', 'created_at']
    list_editable = ['status']
    search_fields = ['id', 'customer_name', 'phone']
    ordering = ['-created_at']
    readonly_fields = ['total_price', 'created_at', 'updated_at']
    inlines = [OrderItemInline]

    def item_count(self, obj):
        return obj.items.count()
    item_count.short_description = 'Items'
