# storefront/api/routers/admin.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.data.database import get_db
from storefront.domain.drafts import NewVariant, VariantEdit
from storefront.domain.schemas import (
    OrderOut,
    OrderItemOut,
    OrderStatus,
    StatusUpdateIn,
    StatusUpdateOut,
    InventoryProductOut,
    ProductIn,
    ProductUpdateIn,
    ProductOut,
    VariantIn,
    VariantUpdateIn,
    VariantOut,
    DashboardOut,
)
from storefront.services.admin_service import AdminService
from storefront.services.inventory_service import InsufficientStockError
from storefront.services.order_service import OrderService

# every route here requires the admin role
router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _run(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InsufficientStockError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/dashboard", response_model=DashboardOut)
def dashboard(db: Session = Depends(get_db)):
    return AdminService(db).dashboard()


# orders
@router.get("/orders", response_model=List[OrderOut])
def list_orders(status: OrderStatus | None = Query(None), db: Session = Depends(get_db)):
    return _run(OrderService(db).list_all, status)


@router.get("/orders/{order_id}/items", response_model=List[OrderItemOut])
def list_order_items(order_id: int, db: Session = Depends(get_db)):
    return _run(OrderService(db).list_items_admin, order_id)


@router.patch("/orders/{order_id}/status", response_model=StatusUpdateOut)
def change_order_status(order_id: int, payload: StatusUpdateIn, db: Session = Depends(get_db)):
    """
    Sets the order status. Moving an order from new/processing to
    shipped/completed takes its items out of stock, once per order.
    """
    return _run(OrderService(db).change_status, order_id, payload.status)


# inventory
@router.get("/inventory", response_model=List[InventoryProductOut])
def inventory(db: Session = Depends(get_db)):
    return AdminService(db).inventory()


@router.patch("/variants/{variant_id}", response_model=VariantOut)
def update_variant(variant_id: int, payload: VariantUpdateIn, db: Session = Depends(get_db)):
    draft = VariantEdit(id=variant_id, price=payload.price, stock_count=payload.stock_count)
    return _run(AdminService(db).save_variant, draft)


@router.post("/products", response_model=ProductOut, status_code=201)
def create_product(payload: ProductIn, db: Session = Depends(get_db)):
    return _run(AdminService(db).create_product, **payload.model_dump())


@router.patch("/products/{product_id}", response_model=ProductOut)
def update_product(product_id: int, payload: ProductUpdateIn, db: Session = Depends(get_db)):
    return _run(AdminService(db).update_product, product_id, **payload.model_dump(exclude_unset=True))


@router.post("/products/{product_id}/variants", response_model=VariantOut, status_code=201)
def create_variant(product_id: int, payload: VariantIn, db: Session = Depends(get_db)):
    draft = NewVariant(
        product_id=product_id,
        size=payload.size,
        grind_type=payload.grind_type,
        price=payload.price,
        stock_count=payload.stock_count,
    )
    return _run(AdminService(db).save_variant, draft)
