"""
customer_directory.py
---------------------
Idempotent find-or-create of customers, keyed on phone number.

- An existing customer keeps their id; a supplied name/email/gender refreshes
  the stored details (the latest booking wins).
- Two requests racing to create the same phone both end up with the same row:
  the unique constraint on Customer.phone rejects the second insert, which then
  re-reads the winner.
"""

import logging

from django.db import IntegrityError, transaction

from ..models import Customer

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "email", "gender")


def normalize_phone(phone: str) -> str:
    """Keep digits only (a leading '+' and separators are dropped)."""
    return "".join(ch for ch in (phone or "") if ch.isdigit())


class CustomerDirectory:
    def find_or_create_by_phone(self, phone: str, fields: dict) -> Customer:
        phone = normalize_phone(phone)
        if not phone:
            raise ValueError("phone is required")
        supplied = {k: v for k, v in (fields or {}).items() if k in UPDATABLE_FIELDS and v}

        customer = Customer.objects.filter(phone=phone).first()
        if customer is None:
            try:
                with transaction.atomic():
                    customer = Customer.objects.create(phone=phone, **supplied)
                logger.info("Created customer #%s", customer.pk)
                return customer
            except IntegrityError:
                customer = Customer.objects.get(phone=phone)

        changed = [k for k, v in supplied.items() if getattr(customer, k) != v]
        if changed:
            for key in changed:
                setattr(customer, key, supplied[key])
            customer.save(update_fields=changed)
        return customer
