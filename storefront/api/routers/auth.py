# storefront/api/routers/auth.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.api.deps import get_auth_client, get_bearer_token
from storefront.data.database import get_db
from storefront.domain.schemas import (
    SignUpIn,
    SignInIn,
    PasswordResetIn,
    PasswordUpdateIn,
    SessionOut,
    MessageOut,
)
from storefront.services.auth_client import AuthClient, AuthError
from storefront.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def get_service(db: Session, client: AuthClient):
    return AuthService(db, client)


@router.post("/signup", response_model=SessionOut, status_code=201)
def sign_up(payload: SignUpIn, db: Session = Depends(get_db), client: AuthClient = Depends(get_auth_client)):
    svc = get_service(db, client)
    try:
        return svc.sign_up(payload.email, payload.password, payload.full_name)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/login", response_model=SessionOut)
def sign_in(payload: SignInIn, db: Session = Depends(get_db), client: AuthClient = Depends(get_auth_client)):
    svc = get_service(db, client)
    try:
        return svc.sign_in(payload.email, payload.password)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/logout", response_model=MessageOut)
def sign_out(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    client: AuthClient = Depends(get_auth_client),
):
    svc = get_service(db, client)
    try:
        svc.sign_out(token)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"message": "Signed out"}


@router.post("/recover", response_model=MessageOut)
def request_password_reset(
    payload: PasswordResetIn,
    db: Session = Depends(get_db),
    client: AuthClient = Depends(get_auth_client),
):
    svc = get_service(db, client)
    try:
        svc.request_password_reset(payload.email, payload.redirect_to)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"message": "Check your email for the password reset link"}


@router.put("/password", response_model=MessageOut)
def update_password(
    payload: PasswordUpdateIn,
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    client: AuthClient = Depends(get_auth_client),
):
    svc = get_service(db, client)
    try:
        svc.update_password(token, payload.password)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"message": "Password updated"}
