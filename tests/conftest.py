import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi import HTTPException  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import storefront.data.models  # noqa: E402,F401
from storefront.api import create_app  # noqa: E402
from storefront.api import deps  # noqa: E402
from storefront.data.database import Base, get_db  # noqa: E402
from storefront.data.models import ProductModel, VariantModel, ProfileModel  # noqa: E402
from storefront.services.auth_client import AuthUser, AuthError  # noqa: E402
from storefront.services.payment_client import PaymentClient, PaymentGatewayError  # noqa: E402

KEY_ID = "rzp_test_key"
KEY_SECRET = "rzp_test_secret"


# ---------- fakes for the external collaborators ----------

class FakeCheckoutStore:
    def __init__(self):
        self.data = {}

    def load(self, user_id):
        return self.data.get(user_id)

    def save(self, user_id, wizard):
        # keep a copy, the way a round trip through redis would
        self.data[user_id] = type(wizard).from_dict(wizard.to_dict())

    def delete(self, user_id):
        self.data.pop(user_id, None)


class FakeLockService:
    def __init__(self):
        self.held = {}

    def acquire_checkout_lock(self, user_id, token, ttl):
        if user_id in self.held:
            return False
        self.held[user_id] = token
        return True

    def release_checkout_lock(self, user_id, token):
        if self.held.get(user_id) == token:
            del self.held[user_id]
            return True
        return False


class FakePaymentClient(PaymentClient):
    def __init__(self, fail=False):
        super().__init__(base_url="http://gateway.test", key_id=KEY_ID, key_secret=KEY_SECRET)
        self.fail = fail
        self.created = []

    def create_order(self, amount, receipt, notes=None):
        if self.fail:
            raise PaymentGatewayError("gateway down")
        self.created.append({"amount": amount, "receipt": receipt, "notes": notes})
        return {"id": f"order_GW{len(self.created)}", "amount": amount, "currency": self.currency}


class FakeNotificationService:
    def __init__(self):
        self.sent = []

    def send_order_confirmation(self, user_id, order_id, payment_method):
        self.sent.append((user_id, order_id, payment_method))


class FakeAuthClient:
    def __init__(self):
        self.tokens = {}
        self.calls = []

    def sign_up(self, email, password, full_name=None):
        self.calls.append(("sign_up", email))
        user = AuthUser(id=f"user-{email}", email=email)
        self.tokens[f"token-{email}"] = user
        return {"user": user, "session": {"access_token": f"token-{email}", "token_type": "bearer"}}

    def sign_in(self, email, password):
        if password != "secret123":
            raise AuthError("Invalid login credentials", status_code=400)
        user = AuthUser(id=f"user-{email}", email=email)
        self.tokens[f"token-{email}"] = user
        return {"user": user, "session": {"access_token": f"token-{email}", "token_type": "bearer"}}

    def sign_out(self, token):
        self.tokens.pop(token, None)

    def request_password_reset(self, email, redirect_to=None):
        self.calls.append(("recover", email))

    def update_password(self, token, password):
        return self.get_user(token)

    def get_user(self, token):
        if token not in self.tokens:
            raise AuthError("Invalid token")
        return self.tokens[token]


# ---------- database ----------

@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def make_product(db, name="Colombian Supremo", variants=None, is_active=True, roast_level="medium"):
    product = ProductModel(
        name=name,
        description=f"{name} beans",
        roast_level=roast_level,
        flavor_notes=["Caramel", "Walnut"],
        origin="Colombia",
        image_url=f"https://img.test/{name.replace(' ', '-').lower()}.jpg",
        is_active=is_active,
    )
    for size, grind, price, stock in variants or [("250g", "whole_bean", "550.00", 50)]:
        product.variants.append(
            VariantModel(size=size, grind_type=grind, price=Decimal(price), stock_count=stock)
        )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture
def product(db):
    return make_product(
        db,
        variants=[
            ("250g", "whole_bean", "550.00", 50),
            ("250g", "fine", "550.00", 10),
            ("500g", "whole_bean", "1045.00", 30),
        ],
    )


@pytest.fixture
def user():
    return AuthUser(id="user-1", email="asha@example.com")


@pytest.fixture
def admin(db):
    db.add(ProfileModel(user_id="admin-1", full_name="Store Admin", role="admin"))
    db.commit()
    return AuthUser(id="admin-1", email="admin@example.com")


# ---------- collaborators ----------

@pytest.fixture
def store():
    return FakeCheckoutStore()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def payment_client():
    return FakePaymentClient()


@pytest.fixture
def notifier():
    return FakeNotificationService()


@pytest.fixture
def auth_client():
    return FakeAuthClient()


# ---------- http ----------

@pytest.fixture
def current_user(user):
    # tests swap the signed-in user by assigning current_user["user"]
    return {"user": user}


@pytest.fixture
def client(session_factory, current_user, store, lock_service, payment_client, notifier, auth_client):
    app = create_app()

    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_user():
        if current_user["user"] is None:
            raise HTTPException(status_code=401, detail=deps.SIGN_IN_REQUIRED)
        return current_user["user"]

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[deps.get_current_user] = override_user
    app.dependency_overrides[deps.get_checkout_store] = lambda: store
    app.dependency_overrides[deps.get_lock_service] = lambda: lock_service
    app.dependency_overrides[deps.get_payment_client] = lambda: payment_client
    app.dependency_overrides[deps.get_notification_service] = lambda: notifier
    app.dependency_overrides[deps.get_auth_client] = lambda: auth_client

    with TestClient(app) as c:
        yield c
