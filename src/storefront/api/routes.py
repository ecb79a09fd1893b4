"""FastAPI routes for the Storefront — carts, orders, payments, catalog, reviews, and coupons.

Every route is a thin adapter: it builds a command from the request and the
caller's Principal, processes it synchronously, and wraps the result in a
``{success, data}`` envelope.
"""

import json

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from storefront.api.auth import Principal, current_principal, require_admin
from storefront.api.schemas import (
    AddToCartRequest,
    AddTrackingRequest,
    AdjustStockRequest,
    ApplyCouponRequest,
    ConfirmPaymentRequest,
    CreateCouponRequest,
    CreateProductRequest,
    CreateReviewRequest,
    PlaceOrderRequest,
    RefundRequest,
    RemoveCartItemRequest,
    ShippingMethodRequest,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
    UpdatePricingRequest,
    UpdateReviewRequest,
    cart_view,
    order_view,
    product_detail_view,
    product_view,
    review_view,
)
from storefront.cart.coupons import ApplyCouponToCart, RemoveCouponFromCart
from storefront.cart.items import AddToCart, RemoveFromCart, UpdateCartQuantity
from storefront.cart.management import ClearCart, FetchCart, SetShippingMethod
from storefront.coupon.management import CreateCoupon, DeactivateCoupon
from storefront.order.cancellation import CancelOrder
from storefront.order.payment import ConfirmPayment, RefundOrder
from storefront.order.placement import PlaceOrder
from storefront.order.queries import get_order, list_orders
from storefront.order.status import AddTracking, UpdateOrderStatus
from storefront.product.catalog import (
    browse_products,
    featured_products,
    get_product,
    get_product_by_slug,
    search_products,
)
from storefront.product.management import AdjustStock, CreateProduct, UpdateProductPricing
from storefront.product.product import Product
from storefront.review.management import CreateReview, DeleteReview, MarkReviewHelpful, UpdateReview
from storefront.review.queries import product_reviews, user_reviews


def _ok(data, **extra) -> dict:
    return {"success": True, "data": data, **extra}


def _process(command):
    return current_domain.process(command, asynchronous=False)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("")
async def get_cart(principal: Principal = Depends(current_principal)) -> dict:
    cart = _process(FetchCart(user_id=principal.user_id))
    return _ok(cart_view(cart))


@cart_router.post("/add")
async def add_to_cart(body: AddToCartRequest, principal: Principal = Depends(current_principal)) -> dict:
    command = AddToCart(
        user_id=principal.user_id,
        product_id=body.product_id,
        quantity=body.quantity,
        variant_key=body.variant_key,
    )
    cart = _process(command)
    return _ok(cart_view(cart), message="Item added to cart successfully")


@cart_router.put("/update")
async def update_cart_item(body: UpdateCartItemRequest, principal: Principal = Depends(current_principal)) -> dict:
    command = UpdateCartQuantity(
        user_id=principal.user_id,
        product_id=body.product_id,
        quantity=body.quantity,
        variant_key=body.variant_key,
    )
    cart = _process(command)
    return _ok(cart_view(cart), message="Cart updated successfully")


@cart_router.delete("/remove")
async def remove_from_cart(body: RemoveCartItemRequest, principal: Principal = Depends(current_principal)) -> dict:
    command = RemoveFromCart(
        user_id=principal.user_id,
        product_id=body.product_id,
        variant_key=body.variant_key,
    )
    cart = _process(command)
    return _ok(cart_view(cart), message="Item removed from cart successfully")


@cart_router.delete("/clear")
async def clear_cart(principal: Principal = Depends(current_principal)) -> dict:
    cart = _process(ClearCart(user_id=principal.user_id))
    return _ok(cart_view(cart), message="Cart cleared successfully")


@cart_router.post("/apply-coupon")
async def apply_coupon(body: ApplyCouponRequest, principal: Principal = Depends(current_principal)) -> dict:
    cart = _process(ApplyCouponToCart(user_id=principal.user_id, coupon_code=body.code))
    return _ok(cart_view(cart), message="Coupon applied successfully")


@cart_router.delete("/remove-coupon")
async def remove_coupon(principal: Principal = Depends(current_principal)) -> dict:
    cart = _process(RemoveCouponFromCart(user_id=principal.user_id))
    return _ok(cart_view(cart), message="Coupon removed successfully")


@cart_router.put("/shipping")
async def set_shipping(body: ShippingMethodRequest, principal: Principal = Depends(current_principal)) -> dict:
    command = SetShippingMethod(
        user_id=principal.user_id,
        name=body.name,
        price=body.price,
        estimated_days=body.estimated_days,
    )
    cart = _process(command)
    return _ok(cart_view(cart), message="Shipping method updated successfully")


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201)
async def place_order(body: PlaceOrderRequest, principal: Principal = Depends(current_principal)) -> dict:
    command = PlaceOrder(
        user_id=principal.user_id,
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        billing_address=json.dumps(body.billing_address.model_dump()) if body.billing_address else None,
        payment_method=body.payment_method,
        coupon_code=body.coupon_code,
        notes=body.notes,
    )
    order = _process(command)
    return _ok(order_view(order))


@order_router.get("")
async def get_user_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str | None = None,
    principal: Principal = Depends(current_principal),
) -> dict:
    orders, pagination = list_orders(principal.user_id, page=page, limit=limit, status=status)
    return _ok([order_view(order) for order in orders], pagination=pagination)


@order_router.get("/{order_id}")
async def get_single_order(order_id: str, principal: Principal = Depends(current_principal)) -> dict:
    order = get_order(order_id, principal.user_id, is_admin=principal.is_admin)
    return _ok(order_view(order))


@order_router.put("/{order_id}/cancel")
async def cancel_order(order_id: str, principal: Principal = Depends(current_principal)) -> dict:
    command = CancelOrder(order_id=order_id, requested_by=principal.user_id, is_admin=principal.is_admin)
    order = _process(command)
    return _ok(order_view(order), message="Order cancelled successfully")


@order_router.put("/{order_id}/status")
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, principal: Principal = Depends(current_principal)
) -> dict:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        tracking_number=body.tracking_number,
        message=body.notes,
        is_admin=principal.is_admin,
    )
    order = _process(command)
    return _ok(order_view(order))


@order_router.put("/{order_id}/tracking")
async def add_tracking(
    order_id: str, body: AddTrackingRequest, principal: Principal = Depends(current_principal)
) -> dict:
    command = AddTracking(
        order_id=order_id,
        tracking_number=body.tracking_number,
        carrier=body.carrier,
        is_admin=principal.is_admin,
    )
    order = _process(command)
    return _ok(order_view(order))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/confirm")
async def confirm_payment(body: ConfirmPaymentRequest, principal: Principal = Depends(current_principal)) -> dict:
    command = ConfirmPayment(
        order_id=body.order_id,
        transaction_id=body.transaction_id,
        requested_by=principal.user_id,
    )
    return _ok(_process(command))


@payment_router.post("/refund")
async def refund(body: RefundRequest, principal: Principal = Depends(current_principal)) -> dict:
    command = RefundOrder(
        order_id=body.order_id,
        amount=body.amount,
        reason=body.reason or "requested_by_customer",
        is_admin=principal.is_admin,
    )
    return _ok(_process(command))


# ---------------------------------------------------------------------------
# Catalog Router (public)
# ---------------------------------------------------------------------------
catalog_router = APIRouter(prefix="/products", tags=["catalog"])


@catalog_router.get("")
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    category: str | None = None,
    brand: str | None = None,
    min_price: float | None = Query(None, ge=0),
    max_price: float | None = Query(None, ge=0),
    search: str | None = None,
    sort: str | None = None,
) -> dict:
    products, pagination = browse_products(
        page=page,
        limit=limit,
        category=category,
        brand=brand,
        min_price=min_price,
        max_price=max_price,
        search=search,
        sort=sort,
    )
    return _ok([product_view(product) for product in products], pagination=pagination)


@catalog_router.get("/featured")
async def list_featured_products(limit: int = Query(8, ge=1, le=50)) -> dict:
    return _ok([product_view(product) for product in featured_products(limit=limit)])


@catalog_router.get("/search")
async def search_catalog(
    q: str = "",
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    sort: str | None = None,
) -> dict:
    products, pagination = search_products(q, page=page, limit=limit, sort=sort)
    return _ok([product_view(product) for product in products], pagination=pagination)


@catalog_router.get("/slug/{slug}")
async def get_product_by_slug_route(slug: str) -> dict:
    product, reviews = get_product_by_slug(slug)
    return _ok(product_detail_view(product, reviews))


# Declared last so the literal paths above take precedence
@catalog_router.get("/{product_id}")
async def get_single_product(product_id: str) -> dict:
    product, reviews = get_product(product_id)
    return _ok(product_detail_view(product, reviews))


# ---------------------------------------------------------------------------
# Catalog Router (admin)
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"], dependencies=[Depends(require_admin)])


def _product(product_id) -> dict:
    return product_view(current_domain.repository_for(Product).get(product_id))


@product_router.post("", status_code=201)
async def create_product(body: CreateProductRequest) -> dict:
    command = CreateProduct(**body.model_dump(exclude={"images"}), images=json.dumps(body.images))
    product_id = _process(command)
    return _ok(_product(product_id))


@product_router.put("/{product_id}/stock")
async def adjust_stock(product_id: str, body: AdjustStockRequest) -> dict:
    _process(AdjustStock(product_id=product_id, delta=body.delta))
    return _ok(_product(product_id))


@product_router.put("/{product_id}/pricing")
async def update_pricing(product_id: str, body: UpdatePricingRequest) -> dict:
    _process(UpdateProductPricing(product_id=product_id, price=body.price, sale_price=body.sale_price))
    return _ok(_product(product_id))


# ---------------------------------------------------------------------------
# Coupon Router (admin)
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"], dependencies=[Depends(require_admin)])


@coupon_router.post("", status_code=201)
async def create_coupon(body: CreateCouponRequest) -> dict:
    payload = body.model_dump(exclude={"categories", "products", "exclude_products"})
    command = CreateCoupon(
        **payload,
        categories=json.dumps(body.categories),
        products=json.dumps(body.products),
        exclude_products=json.dumps(body.exclude_products),
    )
    coupon_id = _process(command)
    return _ok({"coupon_id": coupon_id, "code": body.code.strip().upper()})


@coupon_router.put("/{coupon_id}/deactivate")
async def deactivate_coupon(coupon_id: str) -> dict:
    _process(DeactivateCoupon(coupon_id=coupon_id))
    return _ok({"coupon_id": coupon_id, "is_active": False})


# ---------------------------------------------------------------------------
# Review Router
# ---------------------------------------------------------------------------
review_router = APIRouter(prefix="/reviews", tags=["reviews"])


@review_router.get("/product/{product_id}")
async def get_product_reviews(
    product_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    rating: int | None = Query(None, ge=1, le=5),
    sort: str = "newest",
) -> dict:
    reviews, pagination, stats = product_reviews(product_id, page=page, limit=limit, rating=rating, sort=sort)
    return _ok([review_view(review) for review in reviews], pagination=pagination, stats=stats)


@review_router.post("", status_code=201)
async def create_review(body: CreateReviewRequest, principal: Principal = Depends(current_principal)) -> dict:
    command = CreateReview(
        user_id=principal.user_id,
        product_id=body.product_id,
        rating=body.rating,
        title=body.title,
        comment=body.comment,
        images=json.dumps(body.images),
    )
    return _ok(review_view(_process(command)))


@review_router.get("/user")
async def get_user_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    principal: Principal = Depends(current_principal),
) -> dict:
    reviews, pagination = user_reviews(principal.user_id, page=page, limit=limit)
    return _ok([review_view(review) for review in reviews], pagination=pagination)


@review_router.put("/{review_id}")
async def update_review(
    review_id: str, body: UpdateReviewRequest, principal: Principal = Depends(current_principal)
) -> dict:
    command = UpdateReview(
        review_id=review_id,
        user_id=principal.user_id,
        rating=body.rating,
        title=body.title,
        comment=body.comment,
        images=json.dumps(body.images) if body.images is not None else None,
    )
    return _ok(review_view(_process(command)))


@review_router.delete("/{review_id}")
async def delete_review(review_id: str, principal: Principal = Depends(current_principal)) -> dict:
    _process(DeleteReview(review_id=review_id, requested_by=principal.user_id, is_admin=principal.is_admin))
    return _ok(None, message="Review deleted successfully")


@review_router.post("/{review_id}/helpful")
async def mark_review_helpful(review_id: str, principal: Principal = Depends(current_principal)) -> dict:
    return _ok(_process(MarkReviewHelpful(review_id=review_id, user_id=principal.user_id)))
