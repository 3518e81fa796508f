# storefront/services/checkout_service.py
import uuid
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.domain.checkout import CheckoutWizard, ShippingInfo, validate_shipping
from storefront.domain.schemas import OrderOut
from storefront.repos.cart_repo import CartRepo
from storefront.repos.catalog_repo import CatalogRepo
from storefront.repos.order_repo import OrderRepo
from storefront.services.auth_client import AuthUser
from storefront.services.cart_service import cart_totals
from storefront.services.checkout_store import CheckoutStore
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_client import PaymentClient, PaymentGatewayError, to_smallest_unit
from storefront.services.profile_service import ProfileService
from storefront.utils.settings import CHECKOUT_LOCK_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ORDER_FAILED = "Order Failed"


class OrderPlacementError(RuntimeError):
    pass


class CheckoutInProgressError(RuntimeError):
    pass


class CheckoutService:
    """
    Checkout wizard (shipping -> payment -> review), order placement and
    reconciliation of the payment outcome back onto the order.

    Placement:
    1. order + order items are written in one transaction
    2. cash on delivery: the cart is cleared in that same transaction
    3. gateway: a gateway order is created after commit; if that fails the
       order is marked payment failed and stays retryable from order history
    """

    def __init__(
        self,
        db: Session,
        store: CheckoutStore,
        lock_service: LockService,
        payment_client: PaymentClient,
        notification_service: NotificationService,
    ):
        self.orders = OrderRepo(db)
        self.cart = CartRepo(db)
        self.catalog = CatalogRepo(db)
        self.profiles = ProfileService(db)
        self.store = store
        self.lock_service = lock_service
        self.payment_client = payment_client
        self.notification_service = notification_service

    # wizard
    def start(self, user: AuthUser) -> Dict[str, Any]:
        profile = self.profiles.get_profile(user.id)
        wizard = CheckoutWizard(
            shipping=ShippingInfo(
                name=profile.full_name or "",
                email=user.email or "",
                phone=profile.phone or "",
            )
        )

        default = self.profiles.get_default_address(user.id)
        if default:
            wizard.select_address(default)

        self.store.save(user.id, wizard)
        logger.info(f"Checkout started for user {user.id}")
        return self._view(user.id, wizard)

    def get_state(self, user: AuthUser) -> Dict[str, Any]:
        wizard = self.store.load(user.id)
        if wizard is None:
            return self.start(user)
        return self._view(user.id, wizard)

    def update_shipping(self, user: AuthUser, values: Dict[str, str]) -> Dict[str, Any]:
        wizard = self._load(user)
        wizard.update_shipping(**values)
        return self._save(user.id, wizard)

    def select_address(self, user: AuthUser, address_id: int) -> Dict[str, Any]:
        wizard = self._load(user)
        wizard.select_address(self.profiles.get_address(user.id, address_id))
        return self._save(user.id, wizard)

    def set_payment_method(self, user: AuthUser, method: str) -> Dict[str, Any]:
        wizard = self._load(user)
        wizard.set_payment_method(method)
        return self._save(user.id, wizard)

    def next_step(self, user: AuthUser) -> Dict[str, Any]:
        wizard = self._load(user)
        wizard.next_step()
        return self._save(user.id, wizard)

    def prev_step(self, user: AuthUser) -> Dict[str, Any]:
        wizard = self._load(user)
        wizard.prev_step()
        return self._save(user.id, wizard)

    # placement
    def place_order(self, user: AuthUser) -> Dict[str, Any]:
        wizard = self._load(user)
        if not wizard.ready_to_place:
            raise ValueError("Complete the shipping and payment steps first")
        validate_shipping(wizard.shipping)

        token = uuid.uuid4().hex
        if not self.lock_service.acquire_checkout_lock(user.id, token, CHECKOUT_LOCK_TTL_SECONDS):
            raise CheckoutInProgressError("Your order is already being placed")

        try:
            order = self._create_order(user, wizard)

            if wizard.payment_method == "cod":
                self._drop_wizard(user.id)
                self._notify(user.id, order.id, "cod")
                return {
                    "order": OrderOut.model_validate(order),
                    "payment": None,
                    "message": f"Order #{order.id} has been placed. Pay ₹{order.total_amount:.2f} on delivery.",
                }

            payment = self._open_payment(order)
            self._drop_wizard(user.id)
            return {
                "order": OrderOut.model_validate(order),
                "payment": payment,
                "message": f"Order #{order.id} created, complete the payment to confirm it.",
            }
        finally:
            try:
                self.lock_service.release_checkout_lock(user.id, token)
            except Exception as e:
                # the lock expires on its own after CHECKOUT_LOCK_TTL_SECONDS
                logger.warning(f"Failed to release checkout lock for user {user.id}: {e}")

    def _create_order(self, user: AuthUser, wizard: CheckoutWizard) -> OrderModel:
        items = self.cart.list_items(user.id)
        if not items:
            raise ValueError("Your cart is empty")

        _, total_price = cart_totals(items)
        shipping = wizard.shipping

        order = OrderModel(
            user_id=user.id,
            status="new",
            payment_status="pending",
            payment_method=wizard.payment_method,
            total_amount=total_price,
            shipping_name=shipping.name,
            shipping_email=shipping.email,
            shipping_phone=shipping.phone,
            shipping_address=shipping.address,
            shipping_city=shipping.city,
            shipping_state=shipping.state,
            shipping_pincode=shipping.pincode,
        )

        try:
            for i in items:
                order.items.append(
                    OrderItemModel(
                        variant_id=self._variant_id_for(i),
                        product_name=i.product_name,
                        grind_type=i.grind_type,
                        bag_size=i.bag_size,
                        quantity=i.quantity,
                        unit_price=i.price,
                    )
                )
            self.orders.add_order(order)

            if wizard.payment_method == "cod":
                self.cart.clear(user.id)

            self.orders.commit()
        except SQLAlchemyError as e:
            self.orders.rollback()
            logger.error(f"Order placement failed for user {user.id}: {e}")
            raise OrderPlacementError(ORDER_FAILED) from e

        self.orders.refresh(order)
        logger.info(
            f"Order {order.id} created for user {user.id}: {len(items)} lines, "
            f"total {order.total_amount}, {order.payment_method}"
        )
        return order

    def _variant_id_for(self, cart_item) -> int | None:
        if cart_item.variant_id is not None:
            return cart_item.variant_id
        variant = self.catalog.find_variant(cart_item.product_id, cart_item.grind_type, cart_item.bag_size)
        return variant.id if variant else None

    def _open_payment(self, order: OrderModel) -> Dict[str, Any]:
        amount = to_smallest_unit(Decimal(order.total_amount))
        notes = {"order_id": str(order.id)}

        try:
            gateway_order = self.payment_client.create_order(amount, receipt=f"order_{order.id}", notes=notes)
            gateway_order_id = gateway_order.get("id")
            if not gateway_order_id:
                raise PaymentGatewayError("Payment gateway returned no order id")
        except PaymentGatewayError as e:
            # compensation: the order stays, marked failed, retryable from history
            logger.error(f"Gateway order for order {order.id} failed: {e}")
            order.payment_status = "failed"
            self._commit_quietly(order.id)
            raise OrderPlacementError(ORDER_FAILED) from e

        order.gateway_order_id = gateway_order_id
        order.payment_status = "pending"
        try:
            self.orders.commit()
        except SQLAlchemyError as e:
            self.orders.rollback()
            logger.error(f"Could not store gateway order for order {order.id}: {e}")
            raise OrderPlacementError(ORDER_FAILED) from e

        return self.payment_client.checkout_options(
            amount=amount,
            gateway_order_id=gateway_order_id,
            description=f"Order #{order.id}",
            prefill={
                "name": order.shipping_name,
                "email": order.shipping_email,
                "contact": order.shipping_phone,
            },
            notes=notes,
        )

    def _commit_quietly(self, order_id: int):
        try:
            self.orders.commit()
        except SQLAlchemyError as e:
            self.orders.rollback()
            logger.error(f"Could not mark order {order_id} payment as failed: {e}")

    # payment outcome
    def confirm_payment(
        self,
        user: AuthUser,
        order_id: int,
        payment_id: str,
        gateway_order_id: str,
        signature: str,
    ) -> OrderModel:
        order = self._own_gateway_order(user, order_id)

        if order.payment_status == "success":
            return order

        if gateway_order_id != order.gateway_order_id:
            raise ValueError("Payment does not belong to this order")

        if not self.payment_client.verify_signature(gateway_order_id, payment_id, signature):
            logger.warning(f"Invalid payment signature for order {order_id}")
            raise PermissionError("Invalid payment signature")

        order.payment_status = "success"
        order.payment_id = payment_id
        self.cart.clear(user.id)

        try:
            self.orders.commit()
        except SQLAlchemyError as e:
            self.orders.rollback()
            logger.error(f"Failed to record payment {payment_id} for order {order_id}: {e}")
            raise RuntimeError("Failed to record payment") from e

        self.orders.refresh(order)
        logger.info(f"Payment {payment_id} captured for order {order_id}")
        self._notify(user.id, order.id, "razorpay")
        return order

    def fail_payment(self, user: AuthUser, order_id: int, reason: str | None = None) -> OrderModel:
        order = self._own_gateway_order(user, order_id)

        if order.payment_status == "success":
            raise ValueError("Payment for this order is already captured")

        order.payment_status = "failed"
        try:
            self.orders.commit()
        except SQLAlchemyError as e:
            self.orders.rollback()
            logger.error(f"Failed to mark order {order_id} payment as failed: {e}")
            raise RuntimeError("Failed to update order") from e

        self.orders.refresh(order)
        logger.info(f"Payment for order {order_id} failed or cancelled: {reason or 'no reason given'}")
        return order

    def retry_payment(self, user: AuthUser, order_id: int) -> Dict[str, Any]:
        order = self._own_gateway_order(user, order_id)

        if order.payment_status == "success":
            raise ValueError("Payment for this order is already captured")
        if order.status == "canceled":
            raise ValueError("Order is canceled")

        try:
            payment = self._open_payment(order)
        except OrderPlacementError as e:
            raise PaymentGatewayError("Payment gateway is not available, try again later") from e

        self.orders.refresh(order)
        return {"order": OrderOut.model_validate(order), "payment": payment}

    def _own_gateway_order(self, user: AuthUser, order_id: int) -> OrderModel:
        order = self.orders.get_order(order_id)
        if not order:
            raise LookupError("Order not found")
        if order.user_id != user.id:
            raise PermissionError("No access to this order")
        if order.payment_method != "razorpay":
            raise ValueError("Order is not paid through the payment gateway")
        return order

    # helpers
    # side effects after a committed order; the order stands even if they fail
    def _drop_wizard(self, user_id: str):
        try:
            self.store.delete(user_id)
        except Exception as e:
            logger.warning(f"Failed to drop checkout state for user {user_id}: {e}")

    def _notify(self, user_id: str, order_id: int, payment_method: str):
        try:
            self.notification_service.send_order_confirmation(user_id, order_id, payment_method)
        except Exception as e:
            logger.warning(f"Failed to queue confirmation for order {order_id}: {e}")

    def _load(self, user: AuthUser) -> CheckoutWizard:
        wizard = self.store.load(user.id)
        if wizard is None:
            raise LookupError("Checkout not started")
        return wizard

    def _save(self, user_id: str, wizard: CheckoutWizard) -> Dict[str, Any]:
        self.store.save(user_id, wizard)
        return self._view(user_id, wizard)

    def _view(self, user_id: str, wizard: CheckoutWizard) -> Dict[str, Any]:
        total_items, total_price = cart_totals(self.cart.list_items(user_id))
        return {
            "step": wizard.step,
            "step_name": wizard.step_name,
            "shipping": wizard.to_dict()["shipping"],
            "selected_address_id": wizard.selected_address_id,
            "payment_method": wizard.payment_method,
            "total_items": total_items,
            "total_price": total_price,
        }
