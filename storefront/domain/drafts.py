# storefront/domain/drafts.py
"""
Edit targets for the address book and the inventory screen.

A draft is either a new record or an edit of an existing one; services
dispatch on the type instead of checking a nullable id.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Union

from storefront.domain.checkout import PHONE_RE, PINCODE_RE


@dataclass(frozen=True)
class AddressFields:
    label: str
    name: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str
    is_default: bool = False

    def cleaned(self) -> "AddressFields":
        return replace(
            self,
            label=(self.label or "").strip(),
            name=(self.name or "").strip(),
            phone=(self.phone or "").strip(),
            address=(self.address or "").strip(),
            city=(self.city or "").strip(),
            state=(self.state or "").strip(),
            pincode=(self.pincode or "").strip(),
        )

    def validate(self) -> None:
        f = self.cleaned()
        if not f.label:
            raise ValueError("Label is required")
        if not f.name:
            raise ValueError("Full name is required")
        if not f.phone:
            raise ValueError("Phone number is required")
        if not PHONE_RE.match(f.phone):
            raise ValueError("Please enter a valid 10-digit phone number")
        if not f.address:
            raise ValueError("Street address is required")
        if not f.city:
            raise ValueError("City is required")
        if not f.state:
            raise ValueError("State is required")
        if not f.pincode:
            raise ValueError("Pincode is required")
        if not PINCODE_RE.match(f.pincode):
            raise ValueError("Please enter a valid 6-digit pincode")


@dataclass(frozen=True)
class NewAddress:
    fields: AddressFields


@dataclass(frozen=True)
class ExistingAddress:
    id: int
    fields: AddressFields


AddressDraft = Union[NewAddress, ExistingAddress]


@dataclass(frozen=True)
class NewVariant:
    product_id: int
    size: str
    grind_type: str
    price: Decimal
    stock_count: int = 0


@dataclass(frozen=True)
class VariantEdit:
    id: int
    price: Decimal | None = None
    stock_count: int | None = None


VariantDraft = Union[NewVariant, VariantEdit]
