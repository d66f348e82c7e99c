"""
URL routing for cart API endpoints.
"""
from django.urls import path
from . import views

app_name = 'cart'

urlpatterns = [
    path('cart/', views.CartView.as_view(), name='cart'),
    path('cart/items/', views.CartItemListView.as_view(), name='cart-items'),
    path('cart/items/<str:product_id>/', views.CartItemDetailView.as_view(), name='cart-item'),
]
