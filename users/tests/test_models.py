"""
Users — Model Tests

User creation, role lookups and the seed_roles command.

@file users/tests/test_models.py
"""

import pytest
from django.core.management import call_command

from tests.factories import RoleFactory, UserFactory, UserRoleFactory
from users.models import ROLE_PHARMACIST, ROLE_PHARMACY_ADMIN, ROLE_STOCK_MANAGER, Role, User


@pytest.mark.django_db
class TestUserModel:
    def test_create_user(self):
        user = User.objects.create_user(phone='+25762222222', password='Test2026!!')
        assert user.pk is not None
        assert user.check_password('Test2026!!')
        assert user.is_staff is False

    def test_phone_required(self):
        with pytest.raises(ValueError):
            User.objects.create_user(phone='', password='x')

    def test_superuser_creation(self):
        user = User.objects.create_superuser(phone='+25763333333', password='Super2026!!')
        assert user.is_staff is True
        assert user.is_superuser is True

    def test_full_name(self):
        user = UserFactory(first_name='Jean', last_name='Ndayisaba')
        assert user.get_full_name() == 'Jean Ndayisaba'

    def test_full_name_fallback_to_phone(self):
        user = UserFactory(first_name='', last_name='')
        assert user.get_full_name() == user.phone

    def test_active_manager_excludes_soft_deleted(self):
        kept = UserFactory()
        gone = UserFactory()
        gone.soft_delete()
        active = User.objects.active()
        assert kept in active
        assert gone not in active


@pytest.mark.django_db
class TestRoles:
    def test_has_role(self):
        user = UserFactory()
        UserRoleFactory(user=user, role=RoleFactory(name=ROLE_PHARMACIST))
        assert user.has_role(ROLE_PHARMACIST)
        assert not user.has_role(ROLE_STOCK_MANAGER)
        assert user.role_names == [ROLE_PHARMACIST]

    def test_inactive_assignment_ignored(self):
        user = UserFactory()
        UserRoleFactory(user=user, role=RoleFactory(name=ROLE_STOCK_MANAGER), is_active=False)
        assert not user.has_any_role(ROLE_STOCK_MANAGER, ROLE_PHARMACY_ADMIN)

    def test_seed_roles_is_idempotent(self):
        call_command('seed_roles')
        call_command('seed_roles')
        names = set(Role.objects.values_list('name', flat=True))
        assert {ROLE_PHARMACY_ADMIN, ROLE_PHARMACIST, ROLE_STOCK_MANAGER} <= names
        assert Role.objects.filter(name=ROLE_PHARMACIST).count() == 1
