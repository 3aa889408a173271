"""
Users — API Integration Tests

JWT login and the current-user endpoint.

@file users/tests/test_views.py
"""

import pytest
from django.urls import reverse
from rest_framework import status

from tests.factories import UserFactory
from users.models import ROLE_PHARMACIST


@pytest.mark.django_db
class TestTokenEndpoint:
    def test_login_success(self, api_client):
        UserFactory(phone='+25768000000', password='Login2026!!')
        response = api_client.post(
            reverse('api-v1:auth:token-obtain'),
            {'phone': '+25768000000', 'password': 'Login2026!!'},
            format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data['success'] is True
        assert 'access' in data['data']
        assert 'refresh' in data['data']

    def test_login_wrong_password(self, api_client):
        UserFactory(phone='+25768000001', password='Login2026!!')
        response = api_client.post(
            reverse('api-v1:auth:token-obtain'),
            {'phone': '+25768000001', 'password': 'wrong'},
            format='json',
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()['success'] is False


@pytest.mark.django_db
class TestMeEndpoint:
    def test_requires_authentication(self, api_client):
        response = api_client.get(reverse('api-v1:auth:me'))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_returns_roles(self, pharmacist_client, pharmacist):
        response = pharmacist_client.get(reverse('api-v1:auth:me'))
        assert response.status_code == status.HTTP_200_OK
        data = response.json()['data']
        assert data['phone'] == pharmacist.phone
        assert data['roles'] == [ROLE_PHARMACIST]
