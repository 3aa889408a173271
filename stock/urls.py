"""
Stock — URL Configuration

@file stock/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AdjustStockView,
    AlertListView,
    DispenseView,
    InventorySessionViewSet,
    ReturnView,
    StockMovementViewSet,
    StockSummaryView,
)

app_name = 'stock'

router = DefaultRouter()
router.register('movements', StockMovementViewSet, basename='movement')
router.register('sessions', InventorySessionViewSet, basename='session')

urlpatterns = [
    path('adjust/', AdjustStockView.as_view(), name='adjust'),
    path('dispense/', DispenseView.as_view(), name='dispense'),
    path('return/', ReturnView.as_view(), name='return'),
    path('alerts/', AlertListView.as_view(), name='alerts'),
    path('summary/', StockSummaryView.as_view(), name='summary'),
    path('', include(router.urls)),
]
