"""
Django Admin configuration for catalog models.
"""
from django.contrib import admin
from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'slug', 'status', 'sort_order', 'product_count']
    list_filter = ['status']
    list_editable = ['sort_order']
    search_fields = ['name', 'slug']
    prepopulated_fields = {'slug': ['name']}
    ordering = ['sort_order', 'id']

    def product_count(self, obj):
        return obj.products.count()
    product_count.short_description = 'Products'


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'title', 'sku', 'retail_price', 'discount_price',
        'discount_active', 'stock', 'category', 'status', 'created_at'
    ]
    list_filter = ['category', 'status', 'discount_active', 'created_at']
    search_fields = ['title', 'description', 'sku']
    ordering = ['-created_at']
    raw_id_fields = ['category']
