# storefront/repos/address_repo.py
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from storefront.data.models.user_address import UserAddressModel


class AddressRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_addresses(self, user_id: str) -> List[UserAddressModel]:
        return list(
            self.db.execute(
                select(UserAddressModel)
                .where(UserAddressModel.user_id == user_id)
                .order_by(UserAddressModel.is_default.desc(), UserAddressModel.id)
            ).scalars().all()
        )

    def get_address(self, address_id: int) -> UserAddressModel | None:
        return self.db.get(UserAddressModel, address_id)

    def get_default(self, user_id: str) -> UserAddressModel | None:
        return self.db.execute(
            select(UserAddressModel)
            .where(UserAddressModel.user_id == user_id, UserAddressModel.is_default.is_(True))
            .order_by(UserAddressModel.id)
            .limit(1)
        ).scalar_one_or_none()

    def add(self, address: UserAddressModel) -> UserAddressModel:
        self.db.add(address)
        self.db.flush()
        return address

    def delete(self, address: UserAddressModel) -> None:
        self.db.delete(address)
        self.db.flush()

    def clear_default(self, user_id: str) -> None:
        self.db.flush()
        self.db.execute(
            update(UserAddressModel)
            .where(UserAddressModel.user_id == user_id, UserAddressModel.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
