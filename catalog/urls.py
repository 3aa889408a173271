"""
Catalog — URL Configuration

@file catalog/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import BatchViewSet, ItemViewSet, SupplierViewSet

app_name = 'catalog'

router = DefaultRouter()
router.register('items', ItemViewSet, basename='item')
router.register('batches', BatchViewSet, basename='batch')
router.register('suppliers', SupplierViewSet, basename='supplier')

urlpatterns = [
    path('', include(router.urls)),
]
