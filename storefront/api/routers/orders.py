# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.api.routers.checkout import get_service as get_checkout_service
from storefront.data.database import get_db
from storefront.domain.schemas import OrderOut, OrderItemOut, PaymentRetryOut
from storefront.services.auth_client import AuthUser
from storefront.services.checkout_service import CheckoutService
from storefront.services.order_service import OrderService
from storefront.services.payment_client import PaymentGatewayError

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/", response_model=List[OrderOut])
def list_orders(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Order history of the signed-in user, newest first.
    """
    return OrderService(db).list_orders(user.id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return OrderService(db).get_order(order_id, user.id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{order_id}/items", response_model=List[OrderItemOut])
def list_order_items(order_id: int, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return OrderService(db).list_items(order_id, user.id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{order_id}/payment", response_model=PaymentRetryOut)
def retry_payment(
    order_id: int,
    user: AuthUser = Depends(get_current_user),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """
    Opens a new gateway payment for an unpaid order.
    """
    try:
        return svc.retry_payment(user, order_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PaymentGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e))
