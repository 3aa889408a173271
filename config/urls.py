"""
PharmaStock — Root URL Configuration

All API endpoints are namespaced under /api/v1/.
The DRF browsable API is available for route inspection in development.

@file config/urls.py
"""

from django.contrib import admin
from django.urls import include, path
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.reverse import reverse

admin.site.site_header = 'PharmaStock Administration'
admin.site.site_title = 'PharmaStock'
admin.site.index_title = 'Pharmacy Inventory & Procurement'


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request, format=None):
    """PharmaStock API v1 — endpoint directory."""
    return Response({
        'auth': {
            'token': reverse('api-v1:auth:token-obtain', request=request, format=format),
            'refresh': reverse('api-v1:auth:token-refresh', request=request, format=format),
            'me': reverse('api-v1:auth:me', request=request, format=format),
        },
        'catalog': {
            'items': reverse('api-v1:catalog:item-list', request=request, format=format),
            'batches': reverse('api-v1:catalog:batch-list', request=request, format=format),
            'suppliers': reverse('api-v1:catalog:supplier-list', request=request, format=format),
        },
        'stock': {
            'movements': reverse('api-v1:stock:movement-list', request=request, format=format),
            'adjust': reverse('api-v1:stock:adjust', request=request, format=format),
            'dispense': reverse('api-v1:stock:dispense', request=request, format=format),
            'return': reverse('api-v1:stock:return', request=request, format=format),
            'sessions': reverse('api-v1:stock:session-list', request=request, format=format),
            'alerts': reverse('api-v1:stock:alerts', request=request, format=format),
            'summary': reverse('api-v1:stock:summary', request=request, format=format),
        },
        'procurement': {
            'orders': reverse('api-v1:procurement:order-list', request=request, format=format),
        },
        'analytics': {
            'overview': reverse('api-v1:analytics:overview', request=request, format=format),
            'forecast': reverse('api-v1:analytics:forecast', request=request, format=format),
        },
    })


api_v1_patterns = [
    path('', api_root, name='api-root'),
    path('auth/', include('users.urls', namespace='auth')),
    path('catalog/', include('catalog.urls', namespace='catalog')),
    path('stock/', include('stock.urls', namespace='stock')),
    path('procurement/', include('procurement.urls', namespace='procurement')),
    path('analytics/', include('analytics.urls', namespace='analytics')),
]

urlpatterns = [
    path('admin/', admin.site.urls),

    # DRF session auth (powers the "Log in" button on the browsable API)
    path('api/auth/', include('rest_framework.urls', namespace='rest_framework')),

    # Versioned API
    path('api/v1/', include((api_v1_patterns, 'api-v1'))),
]
