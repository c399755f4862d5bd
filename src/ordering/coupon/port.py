"""Coupon lookup port (abstract interface).

The cart never hardcodes coupon rules; it asks a ``CouponBook`` for the
definition of a code at apply time. Adapters can be backed by a static table,
a promotions service, or a database.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class CouponType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class Coupon:
    """A named discount rule."""

    code: str
    coupon_type: CouponType
    value: float
    min_amount: float = 0.0


def normalize_code(code: str) -> str:
    """Coupon codes are case-insensitive and stored uppercase."""
    return (code or "").strip().upper()


class CouponBook(ABC):
    """Abstract coupon lookup."""

    @abstractmethod
    def lookup(self, code: str) -> Coupon | None:
        """Return the coupon for ``code`` (already normalized), or None if unknown."""
        ...
