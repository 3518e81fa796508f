from decimal import Decimal
from typing import Dict, Any, Iterable, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.cart_item import CartItemModel
from storefront.repos.cart_repo import CartRepo
from storefront.repos.catalog_repo import CatalogRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def cart_totals(items: Iterable[CartItemModel]) -> Tuple[int, Decimal]:
    items = list(items)
    total_items = sum(i.quantity for i in items)
    total_price = sum((i.price * i.quantity for i in items), Decimal("0.00"))
    return total_items, total_price


class CartService:
    """
    Cart of the signed-in user.
    commands (add, update_quantity, remove, clear) write through to the db
    query (get_cart) recomputes totals on every read
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.catalog = CatalogRepo(db)

    # query
    def get_cart(self, user_id: str) -> Dict[str, Any]:
        items = self.repo.list_items(user_id)
        total_items, total_price = cart_totals(items)

        return {
            "items": [
                {
                    "id": i.id,
                    "product_id": i.product_id,
                    "variant_id": i.variant_id,
                    "product_name": i.product_name,
                    "product_image": i.product_image,
                    "price": i.price,
                    "quantity": i.quantity,
                    "grind_type": i.grind_type,
                    "bag_size": i.bag_size,
                    "line_total": i.price * i.quantity,
                }
                for i in items
            ],
            "total_items": total_items,
            "total_price": total_price,
        }

    # commands
    def add_item(
        self,
        user_id: str,
        product_id: int,
        grind_type: str,
        bag_size: str,
        quantity: int,
    ) -> Dict[str, Any]:

        if quantity <= 0:
            raise ValueError("Quantity must be at least 1")

        # same (product, grind, size) -> one line, quantities summed
        existing = self.repo.find_item(user_id, product_id, grind_type, bag_size)
        if existing:
            logger.info(
                f"Product {product_id} ({grind_type}, {bag_size}) already in cart of {user_id}, "
                f"quantity {existing.quantity} -> {existing.quantity + quantity}"
            )
            return self.update_quantity(user_id, existing.id, existing.quantity + quantity)

        product = self.catalog.get_product(product_id)
        if not product or not product.is_active:
            raise LookupError("Product not found")

        variant = self.catalog.find_variant(product_id, grind_type, bag_size)
        if not variant:
            raise LookupError(f"{product.name} is not available as {bag_size} {grind_type}")

        # snapshot name, image and price at add time
        item = CartItemModel(
            user_id=user_id,
            product_id=product.id,
            variant_id=variant.id,
            product_name=product.name,
            product_image=product.image_url,
            price=variant.price,
            grind_type=grind_type,
            bag_size=bag_size,
            quantity=quantity,
        )

        try:
            self.repo.add_item(item)
            self.repo.commit()
        except IntegrityError:
            # a concurrent add created the line first, merge into it
            self.repo.rollback()
            existing = self.repo.find_item(user_id, product_id, grind_type, bag_size)
            if not existing:
                raise RuntimeError("Failed to add item to cart")
            return self.update_quantity(user_id, existing.id, existing.quantity + quantity)
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Error adding to cart: {e}")
            raise RuntimeError("Failed to add item to cart") from e

        logger.info(f"Added {quantity} x {product.name} ({grind_type}, {bag_size}) to cart of {user_id}")
        return self.get_cart(user_id)

    def update_quantity(self, user_id: str, item_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            return self.remove_item(user_id, item_id)

        item = self._own_item(user_id, item_id)
        item.quantity = quantity
        self._commit("Failed to update quantity")

        logger.info(f"Cart item {item_id} quantity set to {quantity}")
        return self.get_cart(user_id)

    def remove_item(self, user_id: str, item_id: int) -> Dict[str, Any]:
        item = self._own_item(user_id, item_id)
        self.repo.delete_item(item)
        self._commit("Failed to remove item from cart")

        logger.info(f"Cart item {item_id} removed")
        return self.get_cart(user_id)

    def clear(self, user_id: str) -> Dict[str, Any]:
        removed = self.repo.clear(user_id)
        self._commit("Failed to clear cart")

        logger.info(f"Cleared cart of {user_id} ({removed} lines)")
        return self.get_cart(user_id)

    def _own_item(self, user_id: str, item_id: int) -> CartItemModel:
        item = self.repo.get_item(item_id)
        if not item:
            raise LookupError("Cart item not found")
        if item.user_id != user_id:
            raise PermissionError("No access to this cart item")
        return item

    def _commit(self, message: str):
        try:
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"{message}: {e}")
            raise RuntimeError(message) from e
