import hashlib
import hmac
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError

from storefront.data.models import OrderModel
from storefront.domain.drafts import AddressFields, NewAddress
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import (
    CheckoutService,
    CheckoutInProgressError,
    OrderPlacementError,
)
from storefront.services.payment_client import PaymentClient
from storefront.services.profile_service import ProfileService
from tests.conftest import (
    KEY_ID,
    KEY_SECRET,
    FakeCheckoutStore,
    FakeLockService,
    FakeNotificationService,
    FakePaymentClient,
    make_product,
)

SHIPPING = {
    "name": "Asha Rao",
    "email": "asha@example.com",
    "phone": "9876543210",
    "address": "12 MG Road",
    "city": "Mumbai",
    "state": "Maharashtra",
    "pincode": "400001",
}


def _sign(gateway_order_id, payment_id):
    return hmac.new(KEY_SECRET.encode(), f"{gateway_order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def _order_count(db):
    return db.execute(select(func.count(OrderModel.id))).scalar_one()


@pytest.fixture
def house_blend(db):
    return make_product(db, name="House Blend", variants=[("250g", "whole_bean", "750.00", 10)])


@pytest.fixture
def checkout(db, store, lock_service, payment_client, notifier):
    return CheckoutService(db, store, lock_service, payment_client, notifier)


@pytest.fixture
def filled_cart(db, house_blend, user):
    return CartService(db).add_item(user.id, house_blend.id, "whole_bean", "250g", 2)


def _to_review(svc, user, method="cod"):
    svc.start(user)
    svc.update_shipping(user, SHIPPING)
    svc.next_step(user)
    svc.set_payment_method(user, method)
    return svc.next_step(user)


def test_cash_on_delivery_order(db, checkout, filled_cart, user, notifier, store, lock_service):
    assert _to_review(checkout, user)["step_name"] == "review"

    result = checkout.place_order(user)

    order = result["order"]
    assert order.status == "new"
    assert order.payment_status == "pending"
    assert order.payment_method == "cod"
    assert order.total_amount == Decimal("1500.00")
    assert result["payment"] is None
    assert result["message"] == f"Order #{order.id} has been placed. Pay ₹1500.00 on delivery."

    assert CartService(db).get_cart(user.id)["items"] == []
    assert notifier.sent == [(user.id, order.id, "cod")]
    assert store.load(user.id) is None
    assert lock_service.held == {}


def test_order_items_capture_variant_and_price(db, checkout, filled_cart, house_blend, user):
    _to_review(checkout, user)

    order_id = checkout.place_order(user)["order"].id

    items = db.get(OrderModel, order_id).items
    assert len(items) == 1
    assert items[0].variant_id == house_blend.variants[0].id
    assert items[0].unit_price == Decimal("750.00")
    assert items[0].quantity == 2
    assert items[0].product_name == "House Blend"


def test_order_copies_shipping_snapshot(checkout, filled_cart, user):
    _to_review(checkout, user)

    order = checkout.place_order(user)["order"]

    assert order.shipping_name == "Asha Rao"
    assert order.shipping_pincode == "400001"
    assert order.shipping_phone == "9876543210"


def test_gateway_order_keeps_cart_until_paid(db, checkout, filled_cart, user, payment_client):
    _to_review(checkout, user, method="razorpay")

    result = checkout.place_order(user)

    assert payment_client.created[0]["amount"] == 150000
    assert result["payment"]["amount"] == 150000
    assert result["payment"]["order_id"] == "order_GW1"
    assert result["payment"]["key"] == payment_client.key_id
    assert result["order"].payment_status == "pending"
    assert CartService(db).get_cart(user.id)["total_items"] == 2


def test_confirm_payment_with_valid_signature(db, checkout, filled_cart, user, notifier):
    _to_review(checkout, user, method="razorpay")
    order_id = checkout.place_order(user)["order"].id

    order = checkout.confirm_payment(user, order_id, "pay_123", "order_GW1", _sign("order_GW1", "pay_123"))

    assert order.payment_status == "success"
    assert order.payment_id == "pay_123"
    assert CartService(db).get_cart(user.id)["items"] == []
    assert notifier.sent == [(user.id, order_id, "razorpay")]


def test_confirm_payment_twice_is_harmless(checkout, filled_cart, user, notifier):
    _to_review(checkout, user, method="razorpay")
    order_id = checkout.place_order(user)["order"].id
    signature = _sign("order_GW1", "pay_123")

    checkout.confirm_payment(user, order_id, "pay_123", "order_GW1", signature)
    order = checkout.confirm_payment(user, order_id, "pay_123", "order_GW1", signature)

    assert order.payment_status == "success"
    assert len(notifier.sent) == 1


def test_forged_signature_is_rejected(db, checkout, filled_cart, user):
    _to_review(checkout, user, method="razorpay")
    order_id = checkout.place_order(user)["order"].id

    with pytest.raises(PermissionError):
        checkout.confirm_payment(user, order_id, "pay_123", "order_GW1", "deadbeef")

    assert db.get(OrderModel, order_id).payment_status == "pending"
    assert CartService(db).get_cart(user.id)["total_items"] == 2


def test_payment_for_another_gateway_order_is_rejected(checkout, filled_cart, user):
    _to_review(checkout, user, method="razorpay")
    order_id = checkout.place_order(user)["order"].id

    with pytest.raises(ValueError):
        checkout.confirm_payment(user, order_id, "pay_123", "order_OTHER", _sign("order_OTHER", "pay_123"))


def test_failed_payment_can_be_retried(checkout, filled_cart, user, payment_client):
    _to_review(checkout, user, method="razorpay")
    order_id = checkout.place_order(user)["order"].id

    failed = checkout.fail_payment(user, order_id, reason="dismissed")
    assert failed.payment_status == "failed"

    retry = checkout.retry_payment(user, order_id)

    assert retry["order"].payment_status == "pending"
    assert retry["payment"]["order_id"] == "order_GW2"
    assert len(payment_client.created) == 2

    paid = checkout.confirm_payment(user, order_id, "pay_9", "order_GW2", _sign("order_GW2", "pay_9"))
    assert paid.payment_status == "success"


def test_captured_payment_cannot_be_failed_or_retried(checkout, filled_cart, user):
    _to_review(checkout, user, method="razorpay")
    order_id = checkout.place_order(user)["order"].id
    checkout.confirm_payment(user, order_id, "pay_1", "order_GW1", _sign("order_GW1", "pay_1"))

    with pytest.raises(ValueError):
        checkout.fail_payment(user, order_id)
    with pytest.raises(ValueError):
        checkout.retry_payment(user, order_id)


def test_cash_on_delivery_order_has_no_gateway_payment(checkout, filled_cart, user):
    _to_review(checkout, user)
    order_id = checkout.place_order(user)["order"].id

    with pytest.raises(ValueError):
        checkout.retry_payment(user, order_id)


def test_payment_outcome_of_someone_elses_order(checkout, filled_cart, user):
    _to_review(checkout, user, method="razorpay")
    order_id = checkout.place_order(user)["order"].id
    intruder = type(user)(id="intruder", email="x@example.com")

    with pytest.raises(PermissionError):
        checkout.fail_payment(intruder, order_id)


def test_gateway_down_marks_order_failed_and_keeps_cart(db, store, lock_service, notifier, filled_cart, user):
    svc = CheckoutService(db, store, lock_service, FakePaymentClient(fail=True), notifier)
    _to_review(svc, user, method="razorpay")

    with pytest.raises(OrderPlacementError, match="Order Failed"):
        svc.place_order(user)

    orders = db.execute(select(OrderModel)).scalars().all()
    assert len(orders) == 1
    assert orders[0].payment_status == "failed"
    assert CartService(db).get_cart(user.id)["total_items"] == 2
    assert lock_service.held == {}
    assert notifier.sent == []


def test_second_placement_while_locked(db, checkout, filled_cart, user, lock_service):
    _to_review(checkout, user)
    lock_service.held[user.id] = "another-request"

    with pytest.raises(CheckoutInProgressError):
        checkout.place_order(user)

    assert _order_count(db) == 0
    assert lock_service.held[user.id] == "another-request"


def test_cannot_place_before_review(db, checkout, filled_cart, user):
    checkout.start(user)
    checkout.update_shipping(user, SHIPPING)
    checkout.next_step(user)

    with pytest.raises(ValueError):
        checkout.place_order(user)
    assert _order_count(db) == 0


def test_empty_cart_is_rejected(db, checkout, user, lock_service):
    _to_review(checkout, user)

    with pytest.raises(ValueError, match="cart is empty"):
        checkout.place_order(user)

    assert _order_count(db) == 0
    assert lock_service.held == {}


def test_placement_is_all_or_nothing(db, checkout, filled_cart, user, monkeypatch):
    _to_review(checkout, user)

    def broken_clear(user_id):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(checkout.cart, "clear", broken_clear)

    with pytest.raises(OrderPlacementError):
        checkout.place_order(user)

    assert _order_count(db) == 0
    assert CartService(db).get_cart(user.id)["total_items"] == 2


def test_shipping_must_validate_before_payment_step(checkout, user):
    checkout.start(user)
    checkout.update_shipping(user, dict(SHIPPING, pincode="12"))

    with pytest.raises(ValueError, match="6-digit pincode"):
        checkout.next_step(user)

    assert checkout.get_state(user)["step"] == 1


def test_start_prefills_from_profile(db, checkout, user):
    ProfileService(db).update_profile(user.id, full_name="Asha Rao", phone="9876543210")

    state = checkout.start(user)

    assert state["step"] == 1
    assert state["shipping"]["name"] == "Asha Rao"
    assert state["shipping"]["phone"] == "9876543210"
    assert state["shipping"]["email"] == user.email
    assert state["selected_address_id"] is None


def test_start_selects_default_address(db, checkout, user):
    address = ProfileService(db).save_address(
        user.id,
        NewAddress(
            AddressFields(
                label="Office",
                name="Asha R",
                phone="9123456780",
                address="5 Nariman Point",
                city="Mumbai",
                state="Maharashtra",
                pincode="400021",
                is_default=True,
            )
        ),
    )

    state = checkout.start(user)

    assert state["selected_address_id"] == address.id
    assert state["shipping"]["pincode"] == "400021"
    assert state["shipping"]["email"] == user.email


def test_select_address_of_someone_else(db, checkout, user):
    address = ProfileService(db).save_address(
        "someone-else",
        NewAddress(AddressFields("Home", "B", "9123456780", "1 Road", "Pune", "MH", "411001")),
    )
    checkout.start(user)

    with pytest.raises(PermissionError):
        checkout.select_address(user, address.id)


def test_wizard_state_reports_cart_totals(checkout, filled_cart, user):
    state = checkout.get_state(user)

    assert state["total_items"] == 2
    assert state["total_price"] == Decimal("1500.00")
    assert state["payment_method"] == "razorpay"


class BrokenNotifier(FakeNotificationService):
    def send_order_confirmation(self, user_id, order_id, payment_method):
        raise ConnectionError("broker unreachable")


class BrokenStore(FakeCheckoutStore):
    def delete(self, user_id):
        raise ConnectionError("redis unreachable")


class BrokenUnlock(FakeLockService):
    def release_checkout_lock(self, user_id, token):
        raise ConnectionError("redis unreachable")


def test_cash_on_delivery_order_stands_when_side_effects_fail(db, payment_client, filled_cart, user):
    svc = CheckoutService(db, BrokenStore(), BrokenUnlock(), payment_client, BrokenNotifier())
    _to_review(svc, user)

    result = svc.place_order(user)

    assert result["order"].payment_method == "cod"
    assert result["message"].endswith("on delivery.")
    assert _order_count(db) == 1
    assert CartService(db).get_cart(user.id)["items"] == []


def test_confirmed_payment_stands_when_notification_fails(db, store, lock_service, payment_client, filled_cart, user):
    svc = CheckoutService(db, store, lock_service, payment_client, BrokenNotifier())
    _to_review(svc, user, method="razorpay")
    order_id = svc.place_order(user)["order"].id

    order = svc.confirm_payment(user, order_id, "pay_1", "order_GW1", _sign("order_GW1", "pay_1"))

    assert order.payment_status == "success"
    assert CartService(db).get_cart(user.id)["items"] == []


def test_gateway_reply_that_is_not_json_marks_order_failed(db, store, lock_service, notifier, filled_cart, user):
    client = PaymentClient(base_url="https://api.gateway.test/v1", key_id=KEY_ID, key_secret=KEY_SECRET)
    svc = CheckoutService(db, store, lock_service, client, notifier)
    _to_review(svc, user, method="razorpay")

    html = MagicMock()
    html.status_code = 200
    html.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")

    with patch("storefront.services.payment_client.requests.post", return_value=html):
        with pytest.raises(OrderPlacementError, match="Order Failed"):
            svc.place_order(user)

    order = db.execute(select(OrderModel)).scalar_one()
    assert order.payment_status == "failed"
    assert order.gateway_order_id is None
    assert CartService(db).get_cart(user.id)["total_items"] == 2
    assert lock_service.held == {}


class NoIdPaymentClient(FakePaymentClient):
    def create_order(self, amount, receipt, notes=None):
        return {"amount": amount, "currency": self.currency}


def test_gateway_order_without_id_marks_order_failed(db, store, lock_service, notifier, filled_cart, user):
    svc = CheckoutService(db, store, lock_service, NoIdPaymentClient(), notifier)
    _to_review(svc, user, method="razorpay")

    with pytest.raises(OrderPlacementError):
        svc.place_order(user)

    assert db.execute(select(OrderModel)).scalar_one().payment_status == "failed"
