"""
Users — Management Command: seed_roles

Creates the three pharmacy roles used by the permission classes.

Usage::

    python manage.py seed_roles

Idempotent (get_or_create).

@file users/management/commands/seed_roles.py
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from users.models import ROLE_PHARMACIST, ROLE_PHARMACY_ADMIN, ROLE_STOCK_MANAGER, Role

PHARMACY_ROLES = [
    (ROLE_PHARMACY_ADMIN, 'Pharmacy administrator: orders, cancellations, counts'),
    (ROLE_PHARMACIST, 'Dispensing, receiving and physical counts'),
    (ROLE_STOCK_MANAGER, 'Procurement, receiving and physical counts'),
]


class Command(BaseCommand):
    help = 'Seed the pharmacy roles.'

    @transaction.atomic
    def handle(self, *args, **options):
        created_count = 0
        for name, description in PHARMACY_ROLES:
            _, created = Role.objects.get_or_create(name=name, defaults={'description': description})
            if created:
                created_count += 1
                self.stdout.write(f'  Created role: {name}')
            else:
                self.stdout.write(f'  Exists: {name}')
        self.stdout.write(self.style.SUCCESS(
            f'Done. {created_count} new roles created, {len(PHARMACY_ROLES) - created_count} already existed.'
        ))
