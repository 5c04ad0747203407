"""
salon_settings.py
-----------------
Resolves the salon-wide scheduling settings.

Lookup order for every key:
1) a configmgr.SystemSetting row (editable in the admin at runtime),
2) settings.SALON_SCHEDULING,
3) the built-in default below.

Malformed rows are ignored with a warning so a typo in the admin cannot take
the booking API down.
"""

import logging
from dataclasses import dataclass

from django.conf import settings

from booking.services.intervals import parse_hhmm

logger = logging.getLogger(__name__)

DEFAULTS = {
    "SLOT_INTERVAL": 30,
    "BUSINESS_OPEN": "09:00",
    "BUSINESS_CLOSE": "18:00",
    "BOOKING_WINDOW_DAYS": 30,
    "BOOKING_LEAD_MINUTES": 30,
    "BOOKING_TIMEOUT_SECONDS": 5,
}


@dataclass(frozen=True)
class SalonSettings:
    slot_interval: int
    business_open: int    # minute of day
    business_close: int   # minute of day
    booking_window_days: int
    booking_lead_minutes: int
    booking_timeout_seconds: int


def _configured(key):
    return getattr(settings, "SALON_SCHEDULING", {}).get(key, DEFAULTS[key])


def _positive_int(key, raw):
    value = int(raw)
    if value <= 0 and key != "BOOKING_LEAD_MINUTES":
        raise ValueError(f"{key} must be positive")
    if value < 0:
        raise ValueError(f"{key} must not be negative")
    return value


def get_salon_settings() -> SalonSettings:
    """
    Return the effective SalonSettings.
    Reads all SystemSetting rows in a single query.
    """
    from .models import SystemSetting

    rows = dict(
        SystemSetting.objects.filter(key__in=DEFAULTS.keys()).values_list("key", "value")
    )

    def resolve(key, convert):
        fallback = convert(key, _configured(key))
        if key not in rows:
            return fallback
        try:
            return convert(key, rows[key].strip())
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed setting %s=%r; using %r", key, rows[key], fallback)
            return fallback

    def hhmm(key, raw):
        return parse_hhmm(raw)

    business_open = resolve("BUSINESS_OPEN", hhmm)
    business_close = resolve("BUSINESS_CLOSE", hhmm)
    if business_close <= business_open:
        logger.warning(
            "BUSINESS_CLOSE is not after BUSINESS_OPEN; using configured defaults"
        )
        business_open = parse_hhmm(_configured("BUSINESS_OPEN"))
        business_close = parse_hhmm(_configured("BUSINESS_CLOSE"))

    return SalonSettings(
        slot_interval=resolve("SLOT_INTERVAL", _positive_int),
        business_open=business_open,
        business_close=business_close,
        booking_window_days=resolve("BOOKING_WINDOW_DAYS", _positive_int),
        booking_lead_minutes=resolve("BOOKING_LEAD_MINUTES", _positive_int),
        booking_timeout_seconds=resolve("BOOKING_TIMEOUT_SECONDS", _positive_int),
    )
