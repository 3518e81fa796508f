# storefront/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, EmailStr, model_validator
from typing import List, Literal, Dict, Any
from decimal import Decimal
from datetime import datetime

RoastLevel = Literal["light", "medium", "dark"]
GrindType = Literal["whole_bean", "coarse", "medium", "fine"]
OrderStatus = Literal["new", "processing", "shipped", "completed", "canceled"]
PaymentStatus = Literal["pending", "success", "failed"]
PaymentMethod = Literal["razorpay", "cod"]


# ---------- auth ----------

class SignUpIn(BaseModel):
    """Schema for account registration."""

    email: EmailStr
    password: str = Field(..., min_length=6, description="Password must be at least 6 characters")
    confirm_password: str
    full_name: str | None = Field(None, max_length=100)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class SignInIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class PasswordResetIn(BaseModel):
    email: EmailStr
    redirect_to: str | None = None


class PasswordUpdateIn(BaseModel):
    password: str = Field(..., min_length=6)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class SessionOut(BaseModel):
    """Schema for an auth session (response)."""

    access_token: str | None = None
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int | None = None
    user_id: str
    email: str | None = None


# ---------- catalog ----------

class VariantOut(BaseModel):
    id: int
    product_id: int
    size: str
    grind_type: str
    price: Decimal
    stock_count: int
    in_stock: bool = True
    low_stock: bool = False

    model_config = ConfigDict(from_attributes=True)


class ProductOut(BaseModel):
    id: int
    name: str
    description: str | None = None
    roast_level: str | None = None
    flavor_notes: List[str] = []
    origin: str | None = None
    image_url: str | None = None
    is_active: bool = True

    model_config = ConfigDict(from_attributes=True)


class ProductDetailOut(ProductOut):
    variants: List[VariantOut] = []


# ---------- cart ----------

class CartItemIn(BaseModel):
    """Schema for adding a bag of coffee to the cart."""

    product_id: int = Field(..., gt=0)
    grind_type: GrindType
    bag_size: str = Field(..., min_length=1, max_length=20, description="e.g. 250g")
    quantity: int = Field(1, gt=0, description="Quantity (must be > 0)")


class QuantityIn(BaseModel):
    """Zero or a negative quantity removes the line."""

    quantity: int


class CartItemOut(BaseModel):
    id: int
    product_id: int
    variant_id: int | None = None
    product_name: str
    product_image: str | None = None
    price: Decimal
    quantity: int
    grind_type: str
    bag_size: str
    line_total: Decimal


class CartOut(BaseModel):
    """Schema for the cart (response)."""

    items: List[CartItemOut]
    total_items: int
    total_price: Decimal


# ---------- checkout ----------

class ShippingIn(BaseModel):
    """Partial shipping form update; only the sent fields are overwritten."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None


class ShippingOut(BaseModel):
    name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str


class PaymentMethodIn(BaseModel):
    payment_method: PaymentMethod


class CheckoutOut(BaseModel):
    """Schema for the checkout wizard state (response)."""

    step: int
    step_name: str
    shipping: ShippingOut
    selected_address_id: int | None = None
    payment_method: PaymentMethod
    total_items: int
    total_price: Decimal


class GatewayCheckoutOut(BaseModel):
    """Options for the payment gateway's hosted checkout widget."""

    key: str
    amount: int = Field(..., description="Amount in the smallest currency unit (paise)")
    currency: str
    name: str
    description: str | None = None
    order_id: str | None = None
    prefill: Dict[str, str] = {}
    notes: Dict[str, str] = {}


class OrderItemOut(BaseModel):
    id: int
    order_id: int
    variant_id: int | None = None
    product_name: str
    grind_type: str
    bag_size: str
    quantity: int
    unit_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Schema for an order (response)."""

    id: int
    user_id: str
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    payment_id: str | None = None
    total_amount: Decimal
    shipping_name: str
    shipping_email: str
    shipping_phone: str
    shipping_address: str
    shipping_city: str
    shipping_state: str
    shipping_pincode: str
    stock_decremented_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PlaceOrderOut(BaseModel):
    order: OrderOut
    payment: GatewayCheckoutOut | None = None
    message: str


class PaymentVerifyIn(BaseModel):
    """Success callback payload from the payment gateway widget."""

    order_id: int = Field(..., gt=0)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class PaymentFailureIn(BaseModel):
    """Dismiss or failure callback from the payment gateway widget."""

    order_id: int = Field(..., gt=0)
    reason: str | None = None


class PaymentRetryOut(BaseModel):
    order: OrderOut
    payment: GatewayCheckoutOut


# ---------- admin ----------

class StatusUpdateIn(BaseModel):
    status: OrderStatus


class StatusUpdateOut(BaseModel):
    order: OrderOut
    inventory_updated: bool
    skipped_items: List[str] = []


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    roast_level: RoastLevel | None = None
    flavor_notes: List[str] = []
    origin: str | None = None
    image_url: str | None = None
    is_active: bool = True


class ProductUpdateIn(BaseModel):
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    roast_level: RoastLevel | None = None
    flavor_notes: List[str] | None = None
    origin: str | None = None
    image_url: str | None = None
    is_active: bool | None = None


class VariantIn(BaseModel):
    size: str = Field(..., min_length=1, max_length=20)
    grind_type: GrindType
    price: Decimal = Field(..., ge=0)
    stock_count: int = Field(0, ge=0)


class VariantUpdateIn(BaseModel):
    """Admin edits are authoritative: price and stock are overwritten as sent."""

    price: Decimal | None = Field(None, ge=0)
    stock_count: int | None = Field(None, ge=0)


class InventoryProductOut(ProductOut):
    variants: List[VariantOut] = []


class DashboardOut(BaseModel):
    total_orders: int
    total_revenue: Decimal
    pending_orders: int
    low_stock_items: int


# ---------- profile ----------

class ProfileOut(BaseModel):
    user_id: str
    full_name: str | None = None
    phone: str | None = None
    address: str | None = None
    role: Literal["customer", "admin"] = "customer"

    model_config = ConfigDict(from_attributes=True)


class ProfileUpdateIn(BaseModel):
    full_name: str | None = Field(None, max_length=100)
    phone: str | None = None
    address: str | None = None


class AddressIn(BaseModel):
    """Field checks happen in the domain layer so the messages match the form."""

    label: str = "Home"
    name: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    is_default: bool = False


class AddressOut(BaseModel):
    id: int
    label: str
    name: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str
    is_default: bool

    model_config = ConfigDict(from_attributes=True)


class MessageOut(BaseModel):
    message: str
    detail: Dict[str, Any] | None = None
