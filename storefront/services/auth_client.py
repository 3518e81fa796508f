# storefront/services/auth_client.py
from dataclasses import dataclass
from typing import Any, Dict

import requests
from requests import RequestException

from storefront.utils.retry import http_retry
from storefront.utils.settings import AUTH_SERVICE_URL, AUTH_SERVICE_KEY
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class AuthError(RuntimeError):
    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str | None = None


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"Auth service returned {resp.status_code}"
    return (
        body.get("msg")
        or body.get("error_description")
        or body.get("message")
        or body.get("error")
        or f"Auth service returned {resp.status_code}"
    )


class AuthClient:
    """
    Thin client for the hosted auth provider (GoTrue style REST API).
    """

    def __init__(self, base_url: str | None = None, api_key: str | None = None, timeout: int = 5):
        self.base_url = (base_url or AUTH_SERVICE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else AUTH_SERVICE_KEY
        self.timeout = timeout

    def _headers(self, token: str | None = None) -> Dict[str, str]:
        headers = {"apikey": self.api_key, "Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @http_retry()
    def _send(self, method: str, path: str, token: str | None = None, **kwargs) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.info(f"AuthClient {method} {url}")
        return requests.request(method, url, headers=self._headers(token), timeout=self.timeout, **kwargs)

    def _call(self, method: str, path: str, token: str | None = None, **kwargs) -> Dict[str, Any]:
        try:
            resp = self._send(method, path, token=token, **kwargs)
        except RequestException as e:
            logger.error(f"Auth service unreachable: {e}")
            raise AuthError("Authentication service unavailable", status_code=503) from e

        if resp.status_code >= 400:
            status = 401 if resp.status_code in (401, 403) else 400
            raise AuthError(_error_message(resp), status_code=status)

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            logger.error(f"Auth service sent a body that is not JSON: {e}")
            raise AuthError("Authentication service unavailable", status_code=503) from e

    @staticmethod
    def _user(data: Dict[str, Any]) -> AuthUser:
        user = data.get("user", data)
        if not user.get("id"):
            raise AuthError("Auth service returned no user")
        return AuthUser(id=str(user["id"]), email=user.get("email"))

    def sign_up(self, email: str, password: str, full_name: str | None = None) -> Dict[str, Any]:
        data = self._call(
            "POST",
            "/signup",
            json={"email": email, "password": password, "data": {"full_name": full_name or ""}},
        )
        return {"user": self._user(data), "session": data if data.get("access_token") else None}

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        data = self._call(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return {"user": self._user(data), "session": data}

    def sign_out(self, token: str) -> None:
        self._call("POST", "/logout", token=token)

    def request_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        self._call("POST", "/recover", params=params, json={"email": email})

    def update_password(self, token: str, password: str) -> AuthUser:
        return self._user(self._call("PUT", "/user", token=token, json={"password": password}))

    def get_user(self, token: str) -> AuthUser:
        return self._user(self._call("GET", "/user", token=token))
