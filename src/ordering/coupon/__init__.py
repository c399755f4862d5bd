"""Coupon book factory.

Provides get_coupon_book() / set_coupon_book() to swap implementations. The
table-backed book holding the standing promotions is the default.
"""

from ordering.coupon.port import CouponBook
from ordering.coupon.table_adapter import TableCouponBook

_current_book: CouponBook | None = None


def get_coupon_book() -> CouponBook:
    """Return the current coupon book. Defaults to TableCouponBook."""
    global _current_book
    if _current_book is None:
        _current_book = TableCouponBook()
    return _current_book


def set_coupon_book(book: CouponBook) -> None:
    """Override the active coupon book (useful for tests)."""
    global _current_book
    _current_book = book


def reset_coupon_book() -> None:
    """Reset to the default coupon book."""
    global _current_book
    _current_book = None
