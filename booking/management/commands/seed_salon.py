"""
seed_salon.py
-------------
Seeds (creates or updates) a demo salon: the service catalog, a few stylists
with skills and hours, and their recurring lunch breaks. Safe to run any time;
services upsert by name and stylists by email.

Usage:
    python manage.py seed_salon
"""

from datetime import time
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from booking.models import Service
from staff.models import Break, StaffMember


CATALOG = [
    # Hair
    {"name": "Haircut",            "category": "Hair",   "description": "Cut and style",          "duration_minutes": 30,  "price": Decimal("800.00")},
    {"name": "Blow-dry",           "category": "Hair",   "description": "Wash and blow-dry",      "duration_minutes": 30,  "price": Decimal("500.00")},
    {"name": "Hair Colour",        "category": "Hair",   "description": "Full colour",            "duration_minutes": 120, "price": Decimal("4500.00")},
    {"name": "Cornrows",           "category": "Braids", "description": "Natural hair",           "duration_minutes": 90,  "price": Decimal("2500.00")},
    {"name": "Knotless Braids",    "category": "Braids", "description": "Knotless/Medium",        "duration_minutes": 360, "price": Decimal("7500.00")},

    # Nails & skin
    {"name": "Manicure",           "category": "Nails",  "description": "Classic manicure",       "duration_minutes": 45,  "price": Decimal("1200.00")},
    {"name": "Facial",             "category": "Skin",   "description": "Cleansing facial",       "duration_minutes": 60,  "price": Decimal("2000.00")},
]

STYLISTS = [
    {
        "name": "Amara", "email": "amara@salon.example",
        "skills": ["Haircut", "Blow-dry", "Hair Colour"],
        "working_days": [0, 1, 2, 3, 4, 5], "hours": (time(9, 0), time(18, 0)),
    },
    {
        "name": "Bea", "email": "bea@salon.example",
        "skills": ["Haircut", "Cornrows", "Knotless Braids"],
        "working_days": [1, 2, 3, 4, 5], "hours": (time(10, 0), time(19, 0)),
    },
    {
        "name": "Chen", "email": "chen@salon.example",
        "skills": ["Manicure", "Facial", "Blow-dry"],
        "working_days": [0, 2, 4, 5], "hours": None,  # salon hours
    },
]

LUNCH = (time(13, 0), time(14, 0))


class Command(BaseCommand):
    help = "Seed or update the demo service catalog and stylists."

    @transaction.atomic
    def handle(self, *args, **options):
        created = 0
        updated = 0

        services = {}
        for item in CATALOG:
            defaults = {k: v for k, v in item.items() if k != "name"}
            svc, is_created = Service.objects.get_or_create(name=item["name"], defaults={**defaults, "active": True})
            if is_created:
                created += 1
            else:
                changed = [k for k, v in defaults.items() if getattr(svc, k) != v]
                if not svc.active:
                    changed.append("active")
                if changed:
                    for key in changed:
                        setattr(svc, key, defaults.get(key, True))
                    svc.save(update_fields=changed)
                    updated += 1
            services[svc.name] = svc

        for item in STYLISTS:
            work_start, work_end = item["hours"] or (None, None)
            staff, is_created = StaffMember.objects.update_or_create(
                email=item["email"],
                defaults={
                    "name": item["name"],
                    "role": StaffMember.STYLIST,
                    "working_days": item["working_days"],
                    "work_start": work_start,
                    "work_end": work_end,
                    "is_active": True,
                },
            )
            staff.skills.set([services[name] for name in item["skills"]])
            Break.objects.get_or_create(
                staff=staff, day_of_week=None, start_time=LUNCH[0], end_time=LUNCH[1]
            )
            if is_created:
                created += 1
            else:
                updated += 1

        self.stdout.write(self.style.SUCCESS(f"Seed complete. Created={created}, Updated={updated}"))
