"""Business policy for the Ordering domain.

Defaults mirror the storefront's published rules and can be overridden per
deployment with ``LUXE_``-prefixed environment variables.
"""

import os


def _float_env(name: str, default: float) -> float:
    return float(os.getenv(name, default))


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, default))


# Pricing
TAX_RATE = _float_env("LUXE_TAX_RATE", 0.08)
FREE_SHIPPING_THRESHOLD = _float_env("LUXE_FREE_SHIPPING_THRESHOLD", 100.0)
FLAT_SHIPPING_CHARGE = _float_env("LUXE_FLAT_SHIPPING_CHARGE", 15.0)
STANDARD_SHIPPING_METHOD = os.getenv("LUXE_STANDARD_SHIPPING_METHOD", "standard")
DEFAULT_CURRENCY = os.getenv("LUXE_DEFAULT_CURRENCY", "USD")

# Cart
MAX_ITEM_QUANTITY = _int_env("LUXE_MAX_ITEM_QUANTITY", 100)
CART_TTL_DAYS = _int_env("LUXE_CART_TTL_DAYS", 30)

# Orders
RETURN_WINDOW_DAYS = _int_env("LUXE_RETURN_WINDOW_DAYS", 30)
ORDER_NUMBER_PREFIX = os.getenv("LUXE_ORDER_NUMBER_PREFIX", "LUX")
