# storefront/repos/profile_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.profile import ProfileModel


class ProfileRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_by_user(self, user_id: str) -> ProfileModel | None:
        return self.db.execute(
            select(ProfileModel).where(ProfileModel.user_id == user_id)
        ).scalar_one_or_none()

    def create(self, profile: ProfileModel) -> ProfileModel:
        self.db.add(profile)
        self.db.commit()
        self.db.refresh(profile)
        return profile

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
