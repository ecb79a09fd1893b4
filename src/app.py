"""Storefront FastAPI application.

Processes commands synchronously over HTTP. Each request runs inside the
storefront domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from domain.toml.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from storefront.domain import storefront  # noqa: E402

storefront.init()

from storefront.api import (  # noqa: E402
    cart_router,
    catalog_router,
    coupon_router,
    order_router,
    payment_router,
    product_router,
    review_router,
)
from storefront.api.errors import register_envelope_handlers  # noqa: E402
from storefront.utils.logging import add_context, clear_context  # noqa: E402


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront API",
        description="E-commerce storefront — catalog, reviews, cart, coupons, orders, and payments",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the storefront domain context and bind request details for logging."""
        add_context(path=request.url.path, method=request.method, user_id=request.headers.get("x-user-id"))
        try:
            with storefront.domain_context():
                return await call_next(request)
        finally:
            clear_context()

    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(payment_router)
    app.include_router(catalog_router)
    app.include_router(product_router)
    app.include_router(review_router)
    app.include_router(coupon_router)
    register_envelope_handlers(app)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok", "domain": {"name": storefront.name}})

    return app


app = create_app()
