# storefront/repos/catalog_repo.py
from typing import List

from sqlalchemy import select, update, func, case
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from storefront.data.models.product import ProductModel
from storefront.data.models.variant import VariantModel


class CatalogRepo:
    def __init__(self, db: Session):
        self.db = db

    # products
    def list_products(self, active_only: bool = True) -> List[ProductModel]:
        stmt = select(ProductModel).order_by(ProductModel.name, ProductModel.id)
        if active_only:
            stmt = stmt.where(ProductModel.is_active.is_(True))
        return list(self.db.execute(stmt).scalars().all())

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def find_product_by_name(self, name: str) -> ProductModel | None:
        # duplicates are possible, first match wins
        return self.db.execute(
            select(ProductModel).where(ProductModel.name == name).order_by(ProductModel.id).limit(1)
        ).scalar_one_or_none()

    def add_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    # variants
    def list_variants(self, product_id: int | None = None) -> List[VariantModel]:
        stmt = select(VariantModel).order_by(VariantModel.size, VariantModel.grind_type, VariantModel.id)
        if product_id is not None:
            stmt = stmt.where(VariantModel.product_id == product_id)
        return list(self.db.execute(stmt).scalars().all())

    def get_variant(self, variant_id: int) -> VariantModel | None:
        return self.db.get(VariantModel, variant_id)

    def find_variant(self, product_id: int, grind_type: str, size: str) -> VariantModel | None:
        return self.db.execute(
            select(VariantModel)
            .where(
                VariantModel.product_id == product_id,
                VariantModel.grind_type == grind_type,
                VariantModel.size == size,
            )
            .order_by(VariantModel.id)
            .limit(1)
        ).scalar_one_or_none()

    def add_variant(self, variant: VariantModel) -> VariantModel:
        self.db.add(variant)
        self.db.flush()
        return variant

    def count_low_stock(self, threshold: int) -> int:
        return self.db.execute(
            select(func.count(VariantModel.id)).where(VariantModel.stock_count < threshold)
        ).scalar_one()

    # stock
    def decrement_stock(self, variant_id: int, quantity: int) -> int:
        """
        Guarded decrement, one UPDATE statement.
        Matches no row when stock_count < quantity; returns rowcount.
        """
        self.db.flush()
        result = self.db.execute(
            update(VariantModel)
            .where(VariantModel.id == variant_id, VariantModel.stock_count >= quantity)
            .values(stock_count=VariantModel.stock_count - quantity)
            .execution_options(synchronize_session=False)
        )
        self._expire_variant(variant_id)
        return result.rowcount

    def decrement_stock_clamped(self, variant_id: int, quantity: int) -> int:
        """
        Decrement that floors at zero, one UPDATE statement.
        """
        self.db.flush()
        result = self.db.execute(
            update(VariantModel)
            .where(VariantModel.id == variant_id)
            .values(
                stock_count=case(
                    (VariantModel.stock_count >= quantity, VariantModel.stock_count - quantity),
                    else_=0,
                )
            )
            .execution_options(synchronize_session=False)
        )
        self._expire_variant(variant_id)
        return result.rowcount

    def _expire_variant(self, variant_id: int) -> None:
        loaded = self.db.identity_map.get(identity_key(VariantModel, variant_id))
        if loaded is not None:
            self.db.expire(loaded)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
