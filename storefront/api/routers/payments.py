# storefront/api/routers/payments.py
from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import get_current_user
from storefront.api.routers.checkout import get_service
from storefront.domain.schemas import PaymentVerifyIn, PaymentFailureIn, OrderOut
from storefront.services.auth_client import AuthUser
from storefront.services.checkout_service import CheckoutService
from storefront.services.payment_client import PaymentGatewayError

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/verify", response_model=OrderOut)
def verify_payment(
    payload: PaymentVerifyIn,
    user: AuthUser = Depends(get_current_user),
    svc: CheckoutService = Depends(get_service),
):
    """
    Success callback of the gateway widget. Marks the order paid and
    empties the cart once the signature checks out.
    """
    try:
        return svc.confirm_payment(
            user,
            payload.order_id,
            payload.razorpay_payment_id,
            payload.razorpay_order_id,
            payload.razorpay_signature,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PaymentGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/failure", response_model=OrderOut)
def payment_failed(
    payload: PaymentFailureIn,
    user: AuthUser = Depends(get_current_user),
    svc: CheckoutService = Depends(get_service),
):
    """
    Dismiss or failure callback. The order stays and can be paid later
    from order history.
    """
    try:
        return svc.fail_payment(user, payload.order_id, payload.reason)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
