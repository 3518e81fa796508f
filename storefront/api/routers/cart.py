# storefront/api/routers/cart.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.data.database import get_db
from storefront.domain.schemas import CartItemIn, QuantityIn, CartOut
from storefront.services.auth_client import AuthUser
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("/", response_model=CartOut)
def get_cart(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return CartService(db).get_cart(user.id)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: CartItemIn,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = CartService(db)
    try:
        return svc.add_item(
            user_id=user.id,
            product_id=payload.product_id,
            grind_type=payload.grind_type,
            bag_size=payload.bag_size,
            quantity=payload.quantity,
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.patch("/items/{item_id}", response_model=CartOut)
def update_quantity(
    item_id: int,
    payload: QuantityIn,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = CartService(db)
    try:
        return svc.update_quantity(user.id, item_id, payload.quantity)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.delete("/items/{item_id}", response_model=CartOut)
def remove_item(
    item_id: int,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = CartService(db)
    try:
        return svc.remove_item(user.id, item_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.delete("/", response_model=CartOut)
def clear_cart(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return CartService(db).clear(user.id)
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
