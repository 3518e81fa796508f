# import all models so SQLAlchemy registers them in Base.metadata

from storefront.data.models.product import ProductModel
from storefront.data.models.variant import VariantModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.user_address import UserAddressModel
from storefront.data.models.profile import ProfileModel

__all__ = [
    "ProductModel",
    "VariantModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "UserAddressModel",
    "ProfileModel",
]
