# storefront/domain/checkout.py
"""
Checkout wizard: Shipping -> Payment -> Review.

The wizard is a plain value object. The step counter only moves forward past
step 1 when the shipping form validates; every other transition is free.
"""
import re
from dataclasses import dataclass, field, asdict, fields
from typing import Any, Dict

FIRST_STEP = 1
LAST_STEP = 3
STEP_NAMES = {1: "shipping", 2: "payment", 3: "review"}

PAYMENT_METHODS = ("razorpay", "cod")

PHONE_RE = re.compile(r"^\d{10}$")
PINCODE_RE = re.compile(r"^\d{6}$")

# fields copied from a saved address (email is never part of one)
ADDRESS_FIELDS = ("name", "phone", "address", "city", "state", "pincode")


class ShippingValidationError(ValueError):
    pass


@dataclass
class ShippingInfo:
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""

    @classmethod
    def field_names(cls):
        return tuple(f.name for f in fields(cls))


def validate_shipping(info: ShippingInfo) -> None:
    if any(not str(getattr(info, name)).strip() for name in ShippingInfo.field_names()):
        raise ShippingValidationError("Please fill in all shipping details")
    if not PINCODE_RE.match(info.pincode):
        raise ShippingValidationError("Please enter a valid 6-digit pincode")
    if not PHONE_RE.match(info.phone):
        raise ShippingValidationError("Please enter a valid 10-digit phone number")


@dataclass
class CheckoutWizard:
    shipping: ShippingInfo = field(default_factory=ShippingInfo)
    step: int = FIRST_STEP
    selected_address_id: int | None = None
    payment_method: str = "razorpay"

    @property
    def step_name(self) -> str:
        return STEP_NAMES[self.step]

    @property
    def ready_to_place(self) -> bool:
        return self.step == LAST_STEP

    def apply_address(self, address) -> None:
        for name in ADDRESS_FIELDS:
            setattr(self.shipping, name, getattr(address, name))

    def select_address(self, address) -> None:
        self.selected_address_id = address.id
        self.apply_address(address)

    def update_shipping(self, **values: str) -> None:
        unknown = set(values) - set(ShippingInfo.field_names())
        if unknown:
            raise ValueError(f"Unknown shipping fields: {', '.join(sorted(unknown))}")

        for name, value in values.items():
            setattr(self.shipping, name, value)

        # a hand edit must not be written back onto the saved address
        if values:
            self.selected_address_id = None

    def set_payment_method(self, method: str) -> None:
        if method not in PAYMENT_METHODS:
            raise ValueError(f"Unsupported payment method: {method}")
        self.payment_method = method

    def next_step(self) -> int:
        if self.step == FIRST_STEP:
            validate_shipping(self.shipping)
        self.step = min(self.step + 1, LAST_STEP)
        return self.step

    def prev_step(self) -> int:
        self.step = max(self.step - 1, FIRST_STEP)
        return self.step

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckoutWizard":
        return cls(
            shipping=ShippingInfo(**data.get("shipping", {})),
            step=int(data.get("step", FIRST_STEP)),
            selected_address_id=data.get("selected_address_id"),
            payment_method=data.get("payment_method", "razorpay"),
        )
