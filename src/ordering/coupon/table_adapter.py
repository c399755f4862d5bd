"""Table-backed coupon book with the storefront's standing promotions."""

from ordering.coupon.port import Coupon, CouponBook, CouponType, normalize_code

DEFAULT_COUPONS = (
    Coupon(code="WELCOME10", coupon_type=CouponType.PERCENTAGE, value=10.0, min_amount=50.0),
    Coupon(code="SAVE20", coupon_type=CouponType.PERCENTAGE, value=20.0, min_amount=100.0),
    Coupon(code="FLAT15", coupon_type=CouponType.FIXED, value=15.0, min_amount=75.0),
)


class TableCouponBook(CouponBook):
    """Coupon book backed by an in-memory table of coupon definitions."""

    def __init__(self, coupons=DEFAULT_COUPONS):
        self._coupons: dict[str, Coupon] = {}
        for coupon in coupons:
            self.register(coupon)

    def register(self, coupon: Coupon) -> None:
        """Add or replace a coupon definition."""
        self._coupons[normalize_code(coupon.code)] = coupon

    def lookup(self, code: str) -> Coupon | None:
        return self._coupons.get(normalize_code(code))
