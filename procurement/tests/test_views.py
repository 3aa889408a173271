"""
Procurement — API Integration Tests

@file procurement/tests/test_views.py
"""

import pytest
from django.urls import reverse
from rest_framework import status

from procurement.models import PurchaseOrder
from procurement.services import PurchaseOrderService
from tests.factories import ItemFactory, SupplierFactory

pytestmark = pytest.mark.django_db


@pytest.fixture
def order():
    return PurchaseOrderService.create_order(
        supplier_id=SupplierFactory().pk,
        lines=[{'item_id': ItemFactory().pk, 'quantity': 10, 'unit_price': '2.00'}],
    )


class TestCreateOrderEndpoint:
    def test_create(self, stock_manager_client):
        supplier = SupplierFactory()
        item_a, item_b = ItemFactory(), ItemFactory()
        response = stock_manager_client.post(
            reverse('api-v1:procurement:order-list'),
            {
                'supplier_id': str(supplier.pk),
                'lines': [
                    {'item_id': str(item_a.pk), 'quantity': 10, 'unit_price': '2.00'},
                    {'item_id': str(item_b.pk), 'quantity': 5, 'unit_price': '3.00'},
                ],
            },
            format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()['data']
        assert data['status'] == PurchaseOrder.StatusChoices.ORDERED
        assert float(data['total_amount']) == 35.0
        assert len(data['lines']) == 2

    def test_create_requires_lines(self, stock_manager_client):
        response = stock_manager_client.post(
            reverse('api-v1:procurement:order-list'),
            {'supplier_id': str(SupplierFactory().pk), 'lines': []},
            format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_requires_order_role(self, authenticated_client):
        response = authenticated_client.post(
            reverse('api-v1:procurement:order-list'),
            {'supplier_id': str(SupplierFactory().pk), 'lines': []},
            format='json',
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestWorkflowEndpoints:
    def test_receive_partial(self, pharmacist_client, order):
        line = order.lines.get()
        response = pharmacist_client.post(
            reverse('api-v1:procurement:order-receive', args=[order.pk]),
            {'receipts': [{'line_id': str(line.pk), 'quantity': 4, 'lot_number': 'L-9', 'expiry_date': '2031-01-31'}]},
            format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()['data']
        assert data['status'] == PurchaseOrder.StatusChoices.PARTIALLY_RECEIVED
        assert data['lines'][0]['received_quantity'] == 4
        assert data['lines'][0]['remaining_quantity'] == 6

    def test_over_receipt(self, pharmacist_client, order):
        line = order.lines.get()
        response = pharmacist_client.post(
            reverse('api-v1:procurement:order-receive', args=[order.pk]),
            {'receipts': [{'line_id': str(line.pk), 'quantity': 11}]},
            format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['code'] == 'OVER_RECEIPT'

    def test_receive_all(self, pharmacist_client, order):
        response = pharmacist_client.post(reverse('api-v1:procurement:order-receive-all', args=[order.pk]))
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['status'] == PurchaseOrder.StatusChoices.RECEIVED

        movements = pharmacist_client.get(reverse('api-v1:procurement:order-movements', args=[order.pk]))
        assert [row['quantity_delta'] for row in movements.json()['data']] == [10]

    def test_cancel_needs_manager(self, pharmacist_client, order):
        response = pharmacist_client.post(reverse('api-v1:procurement:order-cancel', args=[order.pk]))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_cancel(self, stock_manager_client, order):
        response = stock_manager_client.post(
            reverse('api-v1:procurement:order-cancel', args=[order.pk]),
            {'reason': 'Duplicate order'},
            format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['status'] == PurchaseOrder.StatusChoices.CANCELLED

    def test_submit_draft(self, stock_manager_client):
        draft = PurchaseOrderService.create_order(
            supplier_id=SupplierFactory().pk,
            lines=[{'item_id': ItemFactory().pk, 'quantity': 1}],
            as_draft=True,
        )
        response = stock_manager_client.post(reverse('api-v1:procurement:order-submit', args=[draft.pk]))
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['status'] == PurchaseOrder.StatusChoices.ORDERED

    def test_unknown_order(self, stock_manager_client):
        response = stock_manager_client.post(
            reverse('api-v1:procurement:order-submit', args=['00000000-0000-0000-0000-000000000000']),
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestListEndpoints:
    def test_filter_by_status(self, authenticated_client, order):
        PurchaseOrderService.cancel_order(order_id=order.pk)
        response = authenticated_client.get(
            reverse('api-v1:procurement:order-list'), {'status': 'CANCELLED'},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['meta']['total'] == 1

    def test_pending(self, authenticated_client, order):
        response = authenticated_client.get(reverse('api-v1:procurement:order-pending'))
        assert response.status_code == status.HTTP_200_OK
        assert [row['order_number'] for row in response.json()['data']] == [order.order_number]

    def test_recent(self, authenticated_client, order):
        response = authenticated_client.get(reverse('api-v1:procurement:order-recent'), {'limit': 5})
        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()['data']) == 1
