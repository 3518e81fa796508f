# storefront/services/admin_service.py
from decimal import Decimal
from typing import Dict, Any, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.data.models.variant import VariantModel
from storefront.domain.drafts import VariantDraft, NewVariant, VariantEdit
from storefront.repos.catalog_repo import CatalogRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.catalog_service import variant_view
from storefront.services.inventory_service import PRE_FULFILLMENT
from storefront.utils.settings import LOW_STOCK_THRESHOLD
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCT_FIELDS = ("name", "description", "roast_level", "flavor_notes", "origin", "image_url", "is_active")


class AdminService:
    """
    Back office: inventory screen, catalog edits, dashboard numbers.
    Price and stock edits here are authoritative and bypass the order flow.
    """

    def __init__(self, db: Session, low_stock_threshold: int = LOW_STOCK_THRESHOLD):
        self.catalog = CatalogRepo(db)
        self.orders = OrderRepo(db)
        self.low_stock_threshold = low_stock_threshold

    # inventory
    def inventory(self) -> List[Dict[str, Any]]:
        products = self.catalog.list_products(active_only=False)

        grouped: Dict[int, List[VariantModel]] = {}
        for v in self.catalog.list_variants():
            grouped.setdefault(v.product_id, []).append(v)

        return [
            {
                "id": p.id,
                "name": p.name,
                "description": p.description,
                "roast_level": p.roast_level,
                "flavor_notes": list(p.flavor_notes or []),
                "origin": p.origin,
                "image_url": p.image_url,
                "is_active": p.is_active,
                "variants": [variant_view(v, self.low_stock_threshold) for v in grouped.get(p.id, [])],
            }
            for p in products
        ]

    def save_variant(self, draft: VariantDraft) -> Dict[str, Any]:
        if isinstance(draft, NewVariant):
            variant = self._create_variant(draft)
        elif isinstance(draft, VariantEdit):
            variant = self._edit_variant(draft)
        else:
            raise TypeError(f"Unsupported variant draft: {draft!r}")

        self._commit("Failed to update variant")
        return variant_view(variant, self.low_stock_threshold)

    def _create_variant(self, draft: NewVariant) -> VariantModel:
        if not self.catalog.get_product(draft.product_id):
            raise LookupError("Product not found")
        if self.catalog.find_variant(draft.product_id, draft.grind_type, draft.size):
            raise ValueError(f"Variant {draft.size} {draft.grind_type} already exists")
        self._check_price_and_stock(draft.price, draft.stock_count)

        logger.info(f"Creating variant {draft.size} {draft.grind_type} for product {draft.product_id}")
        return self.catalog.add_variant(
            VariantModel(
                product_id=draft.product_id,
                size=draft.size,
                grind_type=draft.grind_type,
                price=draft.price,
                stock_count=draft.stock_count,
            )
        )

    def _edit_variant(self, draft: VariantEdit) -> VariantModel:
        variant = self.catalog.get_variant(draft.id)
        if not variant:
            raise LookupError("Variant not found")
        self._check_price_and_stock(draft.price, draft.stock_count)

        if draft.price is not None:
            variant.price = draft.price
        if draft.stock_count is not None:
            variant.stock_count = draft.stock_count

        logger.info(f"Variant {variant.id} set to price {variant.price}, stock {variant.stock_count}")
        return variant

    @staticmethod
    def _check_price_and_stock(price: Decimal | None, stock_count: int | None):
        if price is not None and price < 0:
            raise ValueError("Price cannot be negative")
        if stock_count is not None and stock_count < 0:
            raise ValueError("Stock cannot be negative")

    # products
    def create_product(self, **values) -> ProductModel:
        product = ProductModel(**{k: v for k, v in values.items() if k in PRODUCT_FIELDS})
        self.catalog.add_product(product)
        self._commit("Failed to create product")
        logger.info(f"Created product {product.id} ({product.name})")
        return product

    def update_product(self, product_id: int, **values) -> ProductModel:
        product = self.catalog.get_product(product_id)
        if not product:
            raise LookupError("Product not found")

        for name, value in values.items():
            if name in PRODUCT_FIELDS and value is not None:
                setattr(product, name, value)

        self._commit("Failed to update product")
        return product

    # dashboard
    def dashboard(self) -> Dict[str, Any]:
        total_orders, revenue = self.orders.stats()
        return {
            "total_orders": total_orders,
            "total_revenue": Decimal(str(revenue)),
            "pending_orders": self.orders.count_by_status(PRE_FULFILLMENT),
            "low_stock_items": self.catalog.count_low_stock(self.low_stock_threshold),
        }

    def _commit(self, message: str):
        try:
            self.catalog.commit()
        except SQLAlchemyError as e:
            self.catalog.rollback()
            logger.error(f"{message}: {e}")
            raise RuntimeError(message) from e
