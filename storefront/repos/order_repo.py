# storefront/repos/order_repo.py
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select, update, func
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        # flush only, the caller owns the transaction
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def list_orders(self, user_id: str | None = None, status: str | None = None) -> List[OrderModel]:
        stmt = select(OrderModel).order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)
        if status is not None:
            stmt = stmt.where(OrderModel.status == status)
        return list(self.db.execute(stmt).scalars().all())

    def list_items(self, order_id: int) -> List[OrderItemModel]:
        return list(
            self.db.execute(
                select(OrderItemModel)
                .where(OrderItemModel.order_id == order_id)
                .order_by(OrderItemModel.id)
            ).scalars().all()
        )

    def list_stale_payments(self, method: str, created_before: datetime) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel).where(
                    OrderModel.payment_method == method,
                    OrderModel.payment_status == "pending",
                    OrderModel.created_at < created_before,
                )
            ).scalars().all()
        )

    def mark_stock_decremented(self, order_id: int) -> bool:
        """
        Check-and-set of the idempotency marker in a single UPDATE.
        True only for the caller that set it.
        """
        self.db.flush()
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.stock_decremented_at.is_(None))
            .values(stock_decremented_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        loaded = self.db.identity_map.get(identity_key(OrderModel, order_id))
        if loaded is not None:
            self.db.expire(loaded, ["stock_decremented_at", "updated_at"])
        return result.rowcount == 1

    def stats(self):
        return self.db.execute(
            select(
                func.count(OrderModel.id),
                func.coalesce(func.sum(OrderModel.total_amount), 0),
            )
        ).one()

    def count_by_status(self, statuses) -> int:
        return self.db.execute(
            select(func.count(OrderModel.id)).where(OrderModel.status.in_(statuses))
        ).scalar_one()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    def refresh(self, obj):
        self.db.refresh(obj)
