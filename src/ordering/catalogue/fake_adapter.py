"""In-memory catalogue adapter: holds products for development and tests."""

from dataclasses import replace

from ordering.catalogue.port import ACTIVE, CataloguePort, ProductInfo


class InMemoryCatalogue(CataloguePort):
    """Catalogue that keeps products in a dict and tracks stock movements."""

    def __init__(self):
        self.products: dict[str, ProductInfo] = {}

    def add_product(
        self,
        product_id: str,
        name: str,
        price: float,
        sku: str | None = None,
        stock: int = 100,
        status: str = ACTIVE,
        track_quantity: bool = True,
        allow_backorder: bool = False,
        image_url: str | None = None,
    ) -> ProductInfo:
        product = ProductInfo(
            product_id=str(product_id),
            name=name,
            sku=sku or f"SKU-{product_id}",
            price=price,
            status=status,
            stock=stock,
            track_quantity=track_quantity,
            allow_backorder=allow_backorder,
            image_url=image_url,
        )
        self.products[product.product_id] = product
        return product

    def set_status(self, product_id: str, status: str) -> None:
        self.products[str(product_id)] = replace(self.products[str(product_id)], status=status)

    def get_product(self, product_id: str) -> ProductInfo | None:
        return self.products.get(str(product_id))

    def reserve_stock(self, product_id: str, quantity: int) -> None:
        product = self.products.get(str(product_id))
        if product is None or not product.track_quantity:
            return
        self.products[product.product_id] = replace(product, stock=max(0, product.stock - quantity))

    def release_stock(self, product_id: str, quantity: int) -> None:
        product = self.products.get(str(product_id))
        if product is None or not product.track_quantity:
            return
        self.products[product.product_id] = replace(product, stock=product.stock + quantity)

    def reset(self):
        """Drop all products (useful between tests)."""
        self.products.clear()
