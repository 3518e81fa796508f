# storefront/services/order_service.py
from typing import Dict, Any, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.domain.schemas import OrderOut
from storefront.repos.order_repo import OrderRepo
from storefront.services.inventory_service import InventoryService, triggers_decrement
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_STATUSES = ("new", "processing", "shipped", "completed", "canceled")


class OrderService:
    """
    Order history for shoppers and the order desk for admins.
    """

    def __init__(self, db: Session, inventory: InventoryService | None = None):
        self.repo = OrderRepo(db)
        self.inventory = inventory or InventoryService(db)

    # shopper
    def list_orders(self, user_id: str) -> List[OrderModel]:
        return self.repo.list_orders(user_id=user_id)

    def get_order(self, order_id: int, user_id: str) -> OrderModel:
        order = self.repo.get_order(order_id)

        if not order:
            raise LookupError("Order not found")

        if order.user_id != user_id:
            raise PermissionError("No access to this order")

        return order

    def list_items(self, order_id: int, user_id: str):
        order = self.get_order(order_id, user_id)
        return self.repo.list_items(order.id)

    # admin
    def list_all(self, status: str | None = None) -> List[OrderModel]:
        if status is not None and status not in ORDER_STATUSES:
            raise ValueError(f"Unknown order status: {status}")
        return self.repo.list_orders(status=status)

    def list_items_admin(self, order_id: int):
        if not self.repo.get_order(order_id):
            raise LookupError("Order not found")
        return self.repo.list_items(order_id)

    def change_status(self, order_id: int, new_status: str) -> Dict[str, Any]:
        """
        Any status may be set; there is no transition graph.
        Leaving new/processing for shipped/completed takes the stock out,
        in the same transaction as the status write.
        """
        if new_status not in ORDER_STATUSES:
            raise ValueError(f"Unknown order status: {new_status}")

        order = self.repo.get_order(order_id)
        if not order:
            raise LookupError("Order not found")

        previous = order.status
        order.status = new_status

        report = None
        try:
            if triggers_decrement(previous, new_status):
                report = self.inventory.decrement_for_order(order)
            self.repo.commit()
        except SQLAlchemyError as e:
            self.repo.rollback()
            logger.error(f"Failed to update order {order_id} status: {e}")
            raise RuntimeError("Failed to update order status") from e
        except Exception:
            self.repo.rollback()
            raise

        self.repo.refresh(order)
        logger.info(
            f"Order {order_id} status {previous} -> {new_status}"
            + (f", inventory updated ({len(report.decremented)} variants)" if report and report.applied else "")
        )

        return {
            "order": OrderOut.model_validate(order),
            "inventory_updated": bool(report and report.applied),
            "skipped_items": report.skipped if report else [],
        }
