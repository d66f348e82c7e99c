"""
URL configuration for the household-goods storefront.
"""
from django.contrib import admin
from django.urls import path, include

from core.views import PreferencesView, health_check


urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health_check, name='health-check'),
    path('api/preferences/', PreferencesView.as_view(), name='preferences'),
    path('api/', include('catalog.urls')),
    path('api/', include('cart.urls')),
    path('api/', include('orders.urls')),
]
