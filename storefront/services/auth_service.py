from typing import Dict, Any

from sqlalchemy.orm import Session

from storefront.services.auth_client import AuthClient, AuthUser
from storefront.services.profile_service import ProfileService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def _session_view(user: AuthUser, session: Dict[str, Any] | None) -> Dict[str, Any]:
    session = session or {}
    return {
        "access_token": session.get("access_token"),
        "refresh_token": session.get("refresh_token"),
        "token_type": session.get("token_type", "bearer"),
        "expires_in": session.get("expires_in"),
        "user_id": user.id,
        "email": user.email,
    }


class AuthService:
    """
    Auth lives in the hosted provider; this side only keeps the profile row
    (and its role) in step with the provider's users.
    """

    def __init__(self, db: Session, client: AuthClient):
        self.client = client
        self.profiles = ProfileService(db)

    def sign_up(self, email: str, password: str, full_name: str | None = None) -> Dict[str, Any]:
        result = self.client.sign_up(email, password, full_name)
        user = result["user"]
        self.profiles.ensure_profile(user.id, full_name)
        logger.info(f"Signed up user {user.id}")
        return _session_view(user, result["session"])

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        result = self.client.sign_in(email, password)
        user = result["user"]
        self.profiles.ensure_profile(user.id)
        return _session_view(user, result["session"])

    def sign_out(self, token: str) -> None:
        self.client.sign_out(token)

    def request_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        self.client.request_password_reset(email, redirect_to)

    def update_password(self, token: str, password: str) -> AuthUser:
        return self.client.update_password(token, password)

    def authenticate(self, token: str) -> AuthUser:
        user = self.client.get_user(token)
        self.profiles.ensure_profile(user.id)
        return user
