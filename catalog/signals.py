"""
Catalog — Signals

Audit logging for Item and Supplier create / update. Ledger-driven balance
changes go through queryset updates and never reach these receivers.

@file catalog/signals.py
"""

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_UPDATE
from core.services import AuditService

from .models import Item, Supplier

_pre_snapshots: dict = {}


def _remember(sender, instance):
    if not instance.pk or instance._state.adding:
        return
    old = sender.objects.filter(pk=instance.pk).first()
    if old is not None:
        _pre_snapshots[(sender.__name__, str(instance.pk))] = AuditService.snapshot(old)


def _record(sender, instance, created):
    action = AUDIT_ACTION_CREATE if created else AUDIT_ACTION_UPDATE
    old = _pre_snapshots.pop((sender.__name__, str(instance.pk)), None)
    new = AuditService.snapshot(instance)
    if not created and old == new:
        return
    AuditService.log(
        actor=getattr(instance, '_current_user', None),
        action=action,
        model_name=sender.__name__,
        object_id=str(instance.pk),
        old_values=old,
        new_values=new,
    )


@receiver(pre_save, sender=Item)
def item_pre_save(sender, instance, **kwargs):
    _remember(sender, instance)


@receiver(post_save, sender=Item)
def item_post_save(sender, instance, created, **kwargs):
    _record(sender, instance, created)


@receiver(pre_save, sender=Supplier)
def supplier_pre_save(sender, instance, **kwargs):
    _remember(sender, instance)


@receiver(post_save, sender=Supplier)
def supplier_post_save(sender, instance, created, **kwargs):
    _record(sender, instance, created)
