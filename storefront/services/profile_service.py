from typing import List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.profile import ProfileModel
from storefront.data.models.user_address import UserAddressModel
from storefront.domain.drafts import AddressDraft, NewAddress, ExistingAddress
from storefront.repos.address_repo import AddressRepo
from storefront.repos.profile_repo import ProfileRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class ProfileService:
    """
    Profile (name, phone, role) and the address book of a user.
    """

    def __init__(self, db: Session):
        self.profiles = ProfileRepo(db)
        self.addresses = AddressRepo(db)

    # profile
    def ensure_profile(self, user_id: str, full_name: str | None = None) -> ProfileModel:
        profile = self.profiles.get_by_user(user_id)
        if profile:
            return profile

        logger.info(f"Creating profile for user {user_id}")
        try:
            return self.profiles.create(ProfileModel(user_id=user_id, full_name=full_name or None, role="customer"))
        except IntegrityError:
            # created by a parallel request
            self.profiles.rollback()
            return self.profiles.get_by_user(user_id)

    def get_profile(self, user_id: str) -> ProfileModel:
        return self.ensure_profile(user_id)

    def update_profile(self, user_id: str, **values) -> ProfileModel:
        profile = self.ensure_profile(user_id)
        for name in ("full_name", "phone", "address"):
            if name in values and values[name] is not None:
                setattr(profile, name, values[name])
        self._commit(self.profiles, "Failed to update profile")
        return profile

    def is_admin(self, user_id: str) -> bool:
        profile = self.profiles.get_by_user(user_id)
        return bool(profile and profile.role == "admin")

    # addresses
    def list_addresses(self, user_id: str) -> List[UserAddressModel]:
        return self.addresses.list_addresses(user_id)

    def get_default_address(self, user_id: str) -> UserAddressModel | None:
        return self.addresses.get_default(user_id)

    def get_address(self, user_id: str, address_id: int) -> UserAddressModel:
        address = self.addresses.get_address(address_id)
        if not address:
            raise LookupError("Address not found")
        if address.user_id != user_id:
            raise PermissionError("No access to this address")
        return address

    def save_address(self, user_id: str, draft: AddressDraft) -> UserAddressModel:
        draft.fields.validate()
        fields = draft.fields.cleaned()

        if isinstance(draft, NewAddress):
            address = UserAddressModel(user_id=user_id)
        elif isinstance(draft, ExistingAddress):
            address = self.get_address(user_id, draft.id)
        else:
            raise TypeError(f"Unsupported address draft: {draft!r}")

        # clearing the old default and writing the new one commit together
        if fields.is_default:
            self.addresses.clear_default(user_id)

        address.label = fields.label
        address.name = fields.name
        address.phone = fields.phone
        address.address = fields.address
        address.city = fields.city
        address.state = fields.state
        address.pincode = fields.pincode
        address.is_default = fields.is_default

        if isinstance(draft, NewAddress):
            self.addresses.add(address)

        self._commit(self.addresses, "Failed to save address")
        logger.info(f"Saved address {address.id} for user {user_id}")
        return address

    def delete_address(self, user_id: str, address_id: int) -> None:
        address = self.get_address(user_id, address_id)
        self.addresses.delete(address)
        self._commit(self.addresses, "Failed to delete address")

    def set_default(self, user_id: str, address_id: int) -> UserAddressModel:
        address = self.get_address(user_id, address_id)
        self.addresses.clear_default(user_id)
        address.is_default = True
        self._commit(self.addresses, "Failed to update default address")
        return address

    @staticmethod
    def _commit(repo, message: str):
        try:
            repo.commit()
        except SQLAlchemyError as e:
            repo.rollback()
            logger.error(f"{message}: {e}")
            raise RuntimeError(message) from e
