# storefront/api/deps.py
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.services.auth_client import AuthClient, AuthError, AuthUser
from storefront.services.auth_service import AuthService
from storefront.services.checkout_store import CheckoutStore
from storefront.services.lock_service import LockService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_client import PaymentClient
from storefront.services.profile_service import ProfileService

SIGN_IN_REQUIRED = "Please sign in"


def get_auth_client() -> AuthClient:
    return AuthClient()


def get_payment_client() -> PaymentClient:
    return PaymentClient()


def get_checkout_store() -> CheckoutStore:
    return CheckoutStore()


def get_lock_service() -> LockService:
    return LockService()


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_bearer_token(authorization: str | None = Header(None)) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail=SIGN_IN_REQUIRED)

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail=SIGN_IN_REQUIRED)
    return token


def get_current_user(
    token: str = Depends(get_bearer_token),
    auth_client: AuthClient = Depends(get_auth_client),
    db: Session = Depends(get_db),
) -> AuthUser:
    try:
        return AuthService(db, auth_client).authenticate(token)
    except AuthError as e:
        detail = SIGN_IN_REQUIRED if e.status_code == 401 else str(e)
        raise HTTPException(status_code=e.status_code, detail=detail)


def require_admin(
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AuthUser:
    if not ProfileService(db).is_admin(user.id):
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
