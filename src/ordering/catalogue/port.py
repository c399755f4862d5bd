"""Product catalogue port (abstract interface).

Ordering does not own products. It consults the catalogue to validate cart
additions, snapshot prices and product details at checkout, and move stock
when orders are placed or cancelled.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ordering.errors import InsufficientStock, NotFound

ACTIVE = "active"


@dataclass(frozen=True)
class ProductInfo:
    """Catalogue facts about a product at the time of the lookup."""

    product_id: str
    name: str
    sku: str
    price: float
    status: str = ACTIVE
    stock: int = 0
    track_quantity: bool = True
    allow_backorder: bool = False
    image_url: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE

    def can_supply(self, quantity: int) -> bool:
        """Whether ``quantity`` units can be sold right now."""
        if not self.is_active:
            return False
        if not self.track_quantity or self.allow_backorder:
            return True
        return self.stock >= quantity


class CataloguePort(ABC):
    """Abstract product catalogue."""

    @abstractmethod
    def get_product(self, product_id: str) -> ProductInfo | None:
        """Return product details, or None if the product does not exist."""
        ...

    @abstractmethod
    def reserve_stock(self, product_id: str, quantity: int) -> None:
        """Take ``quantity`` units out of available stock."""
        ...

    @abstractmethod
    def release_stock(self, product_id: str, quantity: int) -> None:
        """Return ``quantity`` units to available stock."""
        ...

    def is_available(self, product_id: str, quantity: int) -> bool:
        product = self.get_product(product_id)
        return product is not None and product.can_supply(quantity)

    def require_sellable(self, product_id: str, quantity: int) -> ProductInfo:
        """Return the product if ``quantity`` units can be sold, else raise a domain error."""
        product = self.get_product(product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found", field="product_id")
        if not product.is_active:
            raise InsufficientStock(f"Product {product.name} is not available")
        if not product.can_supply(quantity):
            raise InsufficientStock(f"Insufficient stock for {product.name}")
        return product
