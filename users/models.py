"""
Users — Models

Custom User model (UUID PK, phone-based login) and a small role model.
Roles gate who may post stock movements and manage purchase orders:

  PHARMACY_ADMIN — everything, including order cancellation
  PHARMACIST     — dispensing, physical counts, receiving
  STOCK_MANAGER  — purchase orders, receiving, physical counts

@file users/models.py
"""

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel, RegulatedModel
from users.managers import UserManager

ROLE_PHARMACY_ADMIN = 'PHARMACY_ADMIN'
ROLE_PHARMACIST = 'PHARMACIST'
ROLE_STOCK_MANAGER = 'STOCK_MANAGER'


class User(AbstractBaseUser, PermissionsMixin, RegulatedModel):
    """Pharmacy staff member. Authentication is phone-based."""

    phone = models.CharField(_('phone'), max_length=20, unique=True)
    email = models.EmailField(_('email'), unique=True, null=True, blank=True)
    first_name = models.CharField(_('first name'), max_length=100, blank=True)
    last_name = models.CharField(_('last name'), max_length=100, blank=True)

    is_staff = models.BooleanField(_('staff status'), default=False)
    is_active = models.BooleanField(_('active'), default=True)
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = 'phone'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']

    def __str__(self):
        return self.get_full_name()

    def get_full_name(self):
        full = f'{self.first_name} {self.last_name}'.strip()
        return full or self.phone

    def get_short_name(self):
        return self.first_name or self.phone

    @property
    def role_names(self) -> list[str]:
        return list(
            self.user_roles.filter(is_active=True).values_list('role__name', flat=True)
        )

    def has_role(self, role_name: str) -> bool:
        return self.user_roles.filter(role__name=role_name, is_active=True).exists()

    def has_any_role(self, *role_names: str) -> bool:
        return self.user_roles.filter(role__name__in=role_names, is_active=True).exists()


class Role(BaseModel):
    """Named role assigned to users through UserRole."""

    name = models.CharField(_('name'), max_length=60, unique=True)
    description = models.TextField(_('description'), blank=True)

    class Meta:
        verbose_name = _('role')
        verbose_name_plural = _('roles')
        ordering = ['name']

    def __str__(self):
        return self.name


class UserRole(BaseModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='user_roles',
        verbose_name=_('user'),
    )
    role = models.ForeignKey(
        Role,
        on_delete=models.CASCADE,
        related_name='user_roles',
        verbose_name=_('role'),
    )
    is_active = models.BooleanField(_('active'), default=True)

    class Meta:
        verbose_name = _('user role')
        verbose_name_plural = _('user roles')
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['user', 'role'], name='unique_user_role'),
        ]

    def __str__(self):
        return f'{self.user} ← {self.role.name}'
