"""
URL routing for catalog API endpoints.
"""
from django.urls import path
from . import views

app_name = 'catalog'

urlpatterns = [
    path('categories/', views.CategoryListView.as_view(), name='category-list'),
    path('catalog/', views.CatalogView.as_view(), name='catalog'),
    path('catalog/autocomplete/', views.ProductAutocompleteView.as_view(), name='catalog-autocomplete'),
]
