# storefront/services/inventory_service.py
from dataclasses import dataclass, field
from typing import List

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.repos.catalog_repo import CatalogRepo
from storefront.repos.order_repo import OrderRepo
from storefront.utils.settings import INVENTORY_STRICT_DECREMENT
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PRE_FULFILLMENT = ("new", "processing")
FULFILLED = ("shipped", "completed")


class InsufficientStockError(RuntimeError):
    pass


def triggers_decrement(previous_status: str, new_status: str) -> bool:
    return previous_status in PRE_FULFILLMENT and new_status in FULFILLED


@dataclass
class DecrementReport:
    applied: bool
    decremented: List[int] = field(default_factory=list)  # variant ids
    skipped: List[str] = field(default_factory=list)  # product names


class InventoryService:
    """
    Stock decrement for an order leaving the pre-fulfillment phase.

    Runs inside the caller's transaction and never commits. The order's
    stock_decremented_at marker is set with a conditional UPDATE first, so a
    second new->shipped transition finds it set and does nothing.

    Items whose variant cannot be resolved are skipped and reported; the
    rest of the order is still applied.
    """

    def __init__(self, db: Session, strict: bool = INVENTORY_STRICT_DECREMENT):
        self.orders = OrderRepo(db)
        self.catalog = CatalogRepo(db)
        self.strict = strict

    def resolve_variant_id(self, item: OrderItemModel) -> int | None:
        if item.variant_id is not None and self.catalog.get_variant(item.variant_id):
            return item.variant_id

        # rows without a captured variant: product name, then grind + size
        product = self.catalog.find_product_by_name(item.product_name)
        if not product:
            logger.warning(f"Product not found: {item.product_name}")
            return None

        variant = self.catalog.find_variant(product.id, item.grind_type, item.bag_size)
        if not variant:
            logger.warning(f"Variant not found: {item.product_name} {item.bag_size} {item.grind_type}")
            return None
        return variant.id

    def decrement_for_order(self, order: OrderModel) -> DecrementReport:
        if not self.orders.mark_stock_decremented(order.id):
            logger.info(f"Stock already decremented for order {order.id}, skipping")
            return DecrementReport(applied=False)

        report = DecrementReport(applied=True)

        for item in self.orders.list_items(order.id):
            variant_id = self.resolve_variant_id(item)
            if variant_id is None:
                report.skipped.append(item.product_name)
                continue

            if self.strict:
                if self.catalog.decrement_stock(variant_id, item.quantity) == 0:
                    raise InsufficientStockError(f"Insufficient stock for variant {variant_id}")
            else:
                self.catalog.decrement_stock_clamped(variant_id, item.quantity)

            report.decremented.append(variant_id)
            logger.info(f"Order {order.id}: variant {variant_id} -{item.quantity}")

        if report.skipped:
            logger.warning(f"Order {order.id}: skipped items {report.skipped}")
        return report
