from typing import Dict, Any, List

from sqlalchemy.orm import Session

from storefront.data.models.variant import VariantModel
from storefront.repos.catalog_repo import CatalogRepo
from storefront.utils.settings import LOW_STOCK_THRESHOLD


def variant_view(v: VariantModel, low_stock_threshold: int = LOW_STOCK_THRESHOLD) -> Dict[str, Any]:
    return {
        "id": v.id,
        "product_id": v.product_id,
        "size": v.size,
        "grind_type": v.grind_type,
        "price": v.price,
        "stock_count": v.stock_count,
        "in_stock": v.stock_count > 0,
        "low_stock": 0 < v.stock_count < low_stock_threshold,
    }


class CatalogService:
    """Read side of the catalog for shoppers (active products only)."""

    def __init__(self, db: Session):
        self.repo = CatalogRepo(db)

    def list_products(self) -> List[Any]:
        return self.repo.list_products(active_only=True)

    def get_product(self, product_id: int) -> Dict[str, Any]:
        product = self.repo.get_product(product_id)
        if not product or not product.is_active:
            raise LookupError("Product not found")

        return {
            "id": product.id,
            "name": product.name,
            "description": product.description,
            "roast_level": product.roast_level,
            "flavor_notes": list(product.flavor_notes or []),
            "origin": product.origin,
            "image_url": product.image_url,
            "is_active": product.is_active,
            "variants": [variant_view(v) for v in self.repo.list_variants(product.id)],
        }
