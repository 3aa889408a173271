"""
Core — Application Settings Access

Reads the PHARMASTOCK settings block, falling back to built-in defaults so
tests and management commands work without a full .env.

@file core/conf.py
"""

from django.conf import settings

DEFAULTS = {
    'FORECAST_DEFAULT_PERIOD_MONTHS': 6,
    'FORECAST_MAX_PERIOD_MONTHS': 24,
    'SAFETY_STOCK_FACTOR': 1.0,
    'DEFAULT_LEAD_TIME_DAYS': 7,
    'EXPIRY_HIGH_DAYS': 30,
    'EXPIRY_MEDIUM_DAYS': 90,
    'FORECAST_CACHE_TIMEOUT': 60 * 60,
    'REORDER_RECOMMENDATION_LIMIT': 20,
}


def pharmastock_setting(name: str):
    if name not in DEFAULTS:
        raise KeyError(f'Unknown PHARMASTOCK setting: {name}')
    return getattr(settings, 'PHARMASTOCK', {}).get(name, DEFAULTS[name])
