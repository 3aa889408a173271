"""
Catalog — API Integration Tests

@file catalog/tests/test_views.py
"""

import pytest
from django.urls import reverse
from rest_framework import status

from tests.factories import BatchFactory, ItemFactory, SupplierFactory

pytestmark = pytest.mark.django_db


class TestItemEndpoints:
    def test_list_is_paginated_with_total(self, authenticated_client):
        ItemFactory.create_batch(3)
        response = authenticated_client.get(reverse('api-v1:catalog:item-list'), {'page_size': 2})
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body['success'] is True
        assert len(body['data']) == 2
        assert body['meta']['total'] == 3
        assert {'stock_status', 'total_value', 'current_stock'} <= set(body['data'][0])

    def test_list_rejects_short_search(self, authenticated_client):
        response = authenticated_client.get(reverse('api-v1:catalog:item-list'), {'search': 'a'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['success'] is False

    def test_list_requires_authentication(self, api_client):
        response = api_client.get(reverse('api-v1:catalog:item-list'))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_requires_catalog_role(self, pharmacist_client):
        response = pharmacist_client.post(
            reverse('api-v1:catalog:item-list'),
            {'code': 'X-1', 'name': 'X'},
            format='json',
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_create_ignores_stock_fields(self, stock_manager_client):
        response = stock_manager_client.post(
            reverse('api-v1:catalog:item-list'),
            {'code': 'IBU-400', 'name': 'Ibuprofen 400mg', 'unit_cost': '0.80', 'current_stock': 500},
            format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['data']['current_stock'] == 0

    def test_soft_delete(self, stock_manager_client):
        item = ItemFactory()
        response = stock_manager_client.delete(reverse('api-v1:catalog:item-detail', args=[item.pk]))
        assert response.status_code == status.HTTP_204_NO_CONTENT
        item.refresh_from_db()
        assert item.is_deleted is True

    def test_movements(self, authenticated_client, stock_item):
        item = ItemFactory()
        stock_item(item, 5)
        stock_item(item, 3)
        response = authenticated_client.get(reverse('api-v1:catalog:item-movements', args=[item.pk]))
        assert response.status_code == status.HTTP_200_OK
        sequences = [row['sequence'] for row in response.json()['data']]
        assert sequences == [2, 1]


class TestBatchEndpoints:
    def test_create_batch(self, stock_manager_client):
        item = ItemFactory()
        response = stock_manager_client.post(
            reverse('api-v1:catalog:batch-list'),
            {'item': str(item.pk), 'lot_number': 'L-77', 'expiry_date': '2030-06-30'},
            format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['data']['quantity_on_hand'] == 0

    def test_list_batches(self, authenticated_client):
        BatchFactory.create_batch(2)
        response = authenticated_client.get(reverse('api-v1:catalog:batch-list'))
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['meta']['total'] == 2


class TestSupplierEndpoints:
    def test_list_with_order_count(self, authenticated_client):
        SupplierFactory(name='Acme Pharma')
        response = authenticated_client.get(reverse('api-v1:catalog:supplier-list'))
        assert response.status_code == status.HTTP_200_OK
        row = response.json()['data'][0]
        assert row['name'] == 'Acme Pharma'
        assert row['order_count'] == 0

    def test_create_supplier(self, stock_manager_client):
        response = stock_manager_client.post(
            reverse('api-v1:catalog:supplier-list'),
            {'name': 'MedSupply', 'average_lead_time_days': 5},
            format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['data']['average_lead_time_days'] == 5
