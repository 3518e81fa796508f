# storefront/api/routers/checkout.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import (
    get_current_user,
    get_checkout_store,
    get_lock_service,
    get_payment_client,
    get_notification_service,
)
from storefront.data.database import get_db
from storefront.domain.checkout import ShippingValidationError
from storefront.domain.schemas import ShippingIn, PaymentMethodIn, CheckoutOut, PlaceOrderOut
from storefront.services.auth_client import AuthUser
from storefront.services.checkout_service import (
    CheckoutService,
    CheckoutInProgressError,
    OrderPlacementError,
    ORDER_FAILED,
)

router = APIRouter(prefix="/checkout", tags=["checkout"])


def get_service(
    db: Session = Depends(get_db),
    store=Depends(get_checkout_store),
    lock_service=Depends(get_lock_service),
    payment_client=Depends(get_payment_client),
    notification_service=Depends(get_notification_service),
) -> CheckoutService:
    return CheckoutService(
        db=db,
        store=store,
        lock_service=lock_service,
        payment_client=payment_client,
        notification_service=notification_service,
    )


def _run(fn, *args):
    try:
        return fn(*args)
    except ShippingValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/", response_model=CheckoutOut)
def start_checkout(user: AuthUser = Depends(get_current_user), svc: CheckoutService = Depends(get_service)):
    """
    Starts (or restarts) the wizard, prefilled from the profile and the
    default saved address.
    """
    return _run(svc.start, user)


@router.get("/", response_model=CheckoutOut)
def get_checkout(user: AuthUser = Depends(get_current_user), svc: CheckoutService = Depends(get_service)):
    return _run(svc.get_state, user)


@router.patch("/shipping", response_model=CheckoutOut)
def update_shipping(
    payload: ShippingIn,
    user: AuthUser = Depends(get_current_user),
    svc: CheckoutService = Depends(get_service),
):
    return _run(svc.update_shipping, user, payload.model_dump(exclude_unset=True, exclude_none=True))


@router.post("/address/{address_id}", response_model=CheckoutOut)
def select_address(
    address_id: int,
    user: AuthUser = Depends(get_current_user),
    svc: CheckoutService = Depends(get_service),
):
    return _run(svc.select_address, user, address_id)


@router.put("/payment-method", response_model=CheckoutOut)
def set_payment_method(
    payload: PaymentMethodIn,
    user: AuthUser = Depends(get_current_user),
    svc: CheckoutService = Depends(get_service),
):
    return _run(svc.set_payment_method, user, payload.payment_method)


@router.post("/next", response_model=CheckoutOut)
def next_step(user: AuthUser = Depends(get_current_user), svc: CheckoutService = Depends(get_service)):
    return _run(svc.next_step, user)


@router.post("/back", response_model=CheckoutOut)
def prev_step(user: AuthUser = Depends(get_current_user), svc: CheckoutService = Depends(get_service)):
    return _run(svc.prev_step, user)


@router.post("/place-order", response_model=PlaceOrderOut, status_code=201)
def place_order(user: AuthUser = Depends(get_current_user), svc: CheckoutService = Depends(get_service)):
    try:
        return _run(svc.place_order, user)
    except CheckoutInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except OrderPlacementError:
        raise HTTPException(status_code=500, detail=ORDER_FAILED)
