"""
Users — DRF Permission Classes

Role checks shared by the stock, procurement and analytics views.

@file users/permissions.py
"""

from rest_framework.permissions import SAFE_METHODS, BasePermission

from .models import ROLE_PHARMACIST, ROLE_PHARMACY_ADMIN, ROLE_STOCK_MANAGER


def _has_any_role(user, *roles) -> bool:
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return user.has_any_role(*roles)


class CanMoveStock(BasePermission):
    """Dispense, return and physical count: pharmacists and stock managers."""

    def has_permission(self, request, view):
        return _has_any_role(request.user, ROLE_PHARMACY_ADMIN, ROLE_PHARMACIST, ROLE_STOCK_MANAGER)


class CanManageOrders(BasePermission):
    """Create, submit and receive purchase orders; reads open to authenticated users."""

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return _has_any_role(request.user, ROLE_PHARMACY_ADMIN, ROLE_STOCK_MANAGER, ROLE_PHARMACIST)


class CanCancelOrder(BasePermission):
    """Cancellation freezes an order: admins and stock managers only."""

    def has_permission(self, request, view):
        return _has_any_role(request.user, ROLE_PHARMACY_ADMIN, ROLE_STOCK_MANAGER)


class CanManageCatalog(BasePermission):
    """Item, batch and supplier records: admins and stock managers write, everyone reads."""

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return _has_any_role(request.user, ROLE_PHARMACY_ADMIN, ROLE_STOCK_MANAGER)
