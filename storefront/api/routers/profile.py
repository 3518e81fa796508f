# storefront/api/routers/profile.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_current_user
from storefront.data.database import get_db
from storefront.domain.drafts import AddressFields, NewAddress, ExistingAddress
from storefront.domain.schemas import ProfileOut, ProfileUpdateIn, AddressIn, AddressOut, MessageOut
from storefront.services.auth_client import AuthUser
from storefront.services.profile_service import ProfileService

router = APIRouter(prefix="/profile", tags=["profile"])


def _fields(payload: AddressIn) -> AddressFields:
    return AddressFields(**payload.model_dump())


def _run(fn, *args):
    try:
        return fn(*args)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/", response_model=ProfileOut)
def get_profile(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return ProfileService(db).get_profile(user.id)


@router.put("/", response_model=ProfileOut)
def update_profile(
    payload: ProfileUpdateIn,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    svc = ProfileService(db)
    return _run(lambda: svc.update_profile(user.id, **payload.model_dump(exclude_unset=True)))


@router.get("/addresses", response_model=List[AddressOut])
def list_addresses(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return ProfileService(db).list_addresses(user.id)


@router.post("/addresses", response_model=AddressOut, status_code=201)
def add_address(payload: AddressIn, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    return _run(ProfileService(db).save_address, user.id, NewAddress(fields=_fields(payload)))


@router.put("/addresses/{address_id}", response_model=AddressOut)
def update_address(
    address_id: int,
    payload: AddressIn,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    draft = ExistingAddress(id=address_id, fields=_fields(payload))
    return _run(ProfileService(db).save_address, user.id, draft)


@router.delete("/addresses/{address_id}", response_model=MessageOut)
def delete_address(address_id: int, user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    _run(ProfileService(db).delete_address, user.id, address_id)
    return {"message": "Address has been removed"}


@router.post("/addresses/{address_id}/default", response_model=AddressOut)
def set_default_address(
    address_id: int,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _run(ProfileService(db).set_default, user.id, address_id)
