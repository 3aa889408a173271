"""
Core — Model & Audit Tests

AuditLog rows, snapshots and the soft-delete mixin.

@file core/tests/test_models.py
"""

import pytest

from core.models import AuditLog
from core.services import AuditService
from tests.factories import AuditLogFactory, ItemFactory, UserFactory


@pytest.mark.django_db
class TestAuditLog:
    def test_create_audit_log(self):
        user = UserFactory()
        log = AuditService.log(
            actor=user,
            action=AuditLog.ActionChoices.CREATE,
            model_name='Item',
            object_id='test-123',
            new_values={'key': 'value'},
        )
        assert log.pk is not None
        assert log.action == 'CREATE'
        assert log.actor == user
        assert log.new_values == {'key': 'value'}

    def test_anonymous_actor_is_stored_as_null(self):
        from django.contrib.auth.models import AnonymousUser

        log = AuditService.log(
            actor=AnonymousUser(),
            action=AuditLog.ActionChoices.UPDATE,
            model_name='Item',
            object_id='x',
        )
        assert log.actor is None

    def test_factory(self):
        log = AuditLogFactory()
        assert log.pk is not None

    def test_snapshot_is_json_safe(self):
        item = ItemFactory(unit_cost='3.75')
        snapshot = AuditService.snapshot(item)
        assert snapshot['unit_cost'] == '3.75'
        assert snapshot['code'] == item.code
        # Ledger-maintained fields are not editable and never snapshotted.
        assert 'current_stock' not in snapshot


@pytest.mark.django_db
class TestSoftDelete:
    def test_soft_delete_sets_flags(self):
        user = UserFactory()
        item = ItemFactory()
        item.soft_delete(user=user)
        item.refresh_from_db()
        assert item.is_deleted is True
        assert item.deleted_at is not None
        assert item.deleted_by == user

    def test_soft_delete_keeps_row(self):
        item = ItemFactory()
        item.soft_delete()
        assert type(item).objects.filter(pk=item.pk).exists()
