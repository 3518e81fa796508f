# storefront/api/__init__.py
from fastapi import FastAPI

from storefront.api.routers import health, auth, products, cart, checkout, payments, orders, profile, admin


def create_app(**kwargs) -> FastAPI:
    app = FastAPI(
        title="Coffee Storefront",
        version="1.0.0",
        **kwargs,
    )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(products.router)
    app.include_router(cart.router)
    app.include_router(checkout.router)
    app.include_router(payments.router)
    app.include_router(orders.router)
    app.include_router(profile.router)
    app.include_router(admin.router)

    return app
