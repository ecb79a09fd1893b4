"""Pydantic request schemas and response views for the Storefront API."""

from __future__ import annotations

import json
from datetime import datetime

from pydantic import BaseModel, Field

# --- Cart Request Schemas ---


class AddToCartRequest(BaseModel):
    model_config = {
        "json_schema_extra": {"examples": [{"product_id": "prod-001", "quantity": 2, "variant_key": "size-m"}]}
    }

    product_id: str
    quantity: int = Field(1, ge=1)
    variant_key: str | None = Field(None, max_length=100)


class UpdateCartItemRequest(BaseModel):
    product_id: str
    quantity: int
    variant_key: str | None = Field(None, max_length=100)


class RemoveCartItemRequest(BaseModel):
    product_id: str
    variant_key: str | None = Field(None, max_length=100)


class ApplyCouponRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)


class ShippingMethodRequest(BaseModel):
    model_config = {
        "json_schema_extra": {"examples": [{"name": "Express", "price": 15.0, "estimated_days": "1-2 business days"}]}
    }

    name: str = Field(..., min_length=1, max_length=100)
    price: float | None = Field(None, ge=0)
    estimated_days: str | None = Field(None, max_length=100)


# --- Order Request Schemas ---


class AddressSchema(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    zip_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=30)


class PlaceOrderRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address": {
                        "first_name": "Ada",
                        "last_name": "Lovelace",
                        "address": "12 Analytical Row",
                        "city": "London",
                        "state": "Greater London",
                        "zip_code": "N1 9GU",
                        "country": "United Kingdom",
                        "phone": "+44 20 7946 0000",
                    },
                    "payment_method": "stripe",
                    "coupon_code": "SAVE20",
                    "notes": "Leave at the door",
                }
            ]
        }
    }

    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    payment_method: str = Field(..., pattern="^(stripe|paypal|cash_on_delivery)$")
    coupon_code: str | None = Field(None, min_length=3, max_length=50)
    notes: str | None = Field(None, max_length=500)


class UpdateOrderStatusRequest(BaseModel):
    status: str = Field(..., pattern="^(pending|processing|shipped|delivered|cancelled|refunded)$")
    tracking_number: str | None = Field(None, min_length=3, max_length=100)
    notes: str | None = Field(None, max_length=500)


class AddTrackingRequest(BaseModel):
    tracking_number: str = Field(..., min_length=3, max_length=100)
    carrier: str = Field(..., min_length=1, max_length=100)


# --- Payment Request Schemas ---


class ConfirmPaymentRequest(BaseModel):
    order_id: str
    transaction_id: str = Field(..., min_length=1, max_length=255)


class RefundRequest(BaseModel):
    order_id: str
    amount: float | None = Field(None, ge=0.01)
    reason: str | None = Field(None, pattern="^(duplicate|fraudulent|requested_by_customer)$")


# --- Catalog and Coupon Request Schemas ---


class CreateProductRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0)
    sale_price: float | None = Field(None, ge=0)
    count_in_stock: int = Field(0, ge=0)
    description: str | None = None
    brand: str | None = Field(None, max_length=100)
    category: str | None = Field(None, max_length=100)
    sku: str | None = Field(None, max_length=50)
    slug: str | None = Field(None, max_length=200)
    images: list[str] = Field(default_factory=list)
    is_featured: bool = False


# --- Review Request Schemas ---


class CreateReviewRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "rating": 5,
                    "title": "Fits perfectly",
                    "comment": "True to size and comfortable on long walks.",
                }
            ]
        }
    }

    product_id: str
    rating: int = Field(..., ge=1, le=5)
    title: str = Field(..., min_length=3, max_length=100)
    comment: str = Field(..., min_length=10, max_length=1000)
    images: list[str] = Field(default_factory=list)


class UpdateReviewRequest(BaseModel):
    rating: int | None = Field(None, ge=1, le=5)
    title: str | None = Field(None, min_length=3, max_length=100)
    comment: str | None = Field(None, min_length=10, max_length=1000)
    images: list[str] | None = None


class AdjustStockRequest(BaseModel):
    delta: int


class UpdatePricingRequest(BaseModel):
    price: float = Field(..., ge=0)
    sale_price: float | None = Field(None, ge=0)


class CreateCouponRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "SAVE20",
                    "name": "Twenty off",
                    "discount_type": "fixed",
                    "value": 20,
                    "min_amount": 15,
                    "end_date": "2030-12-31T23:59:59Z",
                }
            ]
        }
    }

    code: str = Field(..., min_length=3, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    discount_type: str = Field(..., pattern="^(percentage|fixed)$")
    value: float = Field(..., ge=0)
    min_amount: float = Field(0.0, ge=0)
    max_discount: float | None = Field(None, ge=0)
    start_date: datetime | None = None
    end_date: datetime
    max_uses: int | None = Field(None, ge=1)
    user_limit: int = Field(1, ge=1)
    categories: list[str] = Field(default_factory=list)
    products: list[str] = Field(default_factory=list)
    exclude_products: list[str] = Field(default_factory=list)
    is_first_time_only: bool = False


# --- Response Views ---


def cart_view(cart) -> dict:
    shipping = cart.shipping_method
    return {
        "id": str(cart.id),
        "user_id": str(cart.user_id),
        "items": [
            {
                "product_id": str(item.product_id),
                "variant_key": item.variant_key,
                "quantity": item.quantity,
                "price": item.price,
            }
            for item in cart.items
        ],
        "coupon": {"id": str(cart.coupon_id), "code": cart.coupon_code} if cart.coupon_id else None,
        "coupon_discount": cart.coupon_discount or 0.0,
        "shipping_method": (
            {"name": shipping.name, "price": shipping.price, "estimated_days": shipping.estimated_days}
            if shipping
            else None
        ),
        "subtotal": cart.subtotal,
        "total_items": cart.total_items,
        "shipping_cost": cart.shipping_cost,
        "total": cart.total,
    }


def _address_view(address) -> dict | None:
    if address is None:
        return None
    return {
        "first_name": address.first_name,
        "last_name": address.last_name,
        "address": address.address,
        "city": address.city,
        "state": address.state,
        "zip_code": address.zip_code,
        "country": address.country,
        "phone": address.phone,
    }


def order_view(order) -> dict:
    payment, totals, shipping = order.payment, order.totals, order.shipping
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "user_id": str(order.user_id),
        "status": order.status,
        "items": [
            {
                "product_id": str(item.product_id),
                "name": item.name,
                "image": item.image,
                "price": item.price,
                "quantity": item.quantity,
                "variant_key": item.variant_key,
            }
            for item in order.items
        ],
        "shipping_address": _address_view(order.shipping_address),
        "billing_address": _address_view(order.billing_address),
        "payment": {
            "provider": payment.provider,
            "status": payment.status,
            "amount": payment.amount,
            "currency": payment.currency,
            "transaction_id": payment.transaction_id,
            "refund_id": payment.refund_id,
        },
        "totals": {
            "subtotal": totals.subtotal,
            "shipping": totals.shipping,
            "tax": totals.tax,
            "discount": totals.discount,
            "grand_total": totals.grand_total,
        },
        "shipping_method": {
            "name": shipping.name,
            "price": shipping.price,
            "estimated_days": shipping.estimated_days,
            "tracking_number": shipping.tracking_number,
            "carrier": shipping.carrier,
        }
        if shipping
        else None,
        "coupon_code": order.coupon_code,
        "notes": order.notes,
        "timeline": [
            {"status": entry.status, "message": entry.message, "timestamp": entry.timestamp.isoformat()}
            for entry in order.sorted_timeline()
        ],
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


def product_view(product) -> dict:
    return {
        "id": str(product.id),
        "name": product.name,
        "slug": product.slug,
        "price": product.price,
        "sale_price": product.sale_price,
        "current_price": product.current_price,
        "count_in_stock": product.count_in_stock,
        "is_active": product.is_active,
        "is_featured": product.is_featured,
        "brand": product.brand,
        "category": product.category,
        "rating": product.rating,
        "num_reviews": product.num_reviews,
        "primary_image": product.primary_image,
    }


def product_detail_view(product, reviews) -> dict:
    return {
        **product_view(product),
        "description": product.description,
        "sku": product.sku,
        "discount_percentage": product.discount_percentage,
        "images": json.loads(product.images) if product.images else [],
        "variants": [{"name": variant.name, "options": variant.option_list()} for variant in product.variants],
        "reviews": [review_view(review) for review in reviews],
    }


def review_view(review) -> dict:
    return {
        "id": str(review.id),
        "product_id": str(review.product_id),
        "user_id": str(review.user_id),
        "rating": review.rating,
        "title": review.title,
        "comment": review.comment,
        "images": review.image_list(),
        "is_verified": review.is_verified,
        "helpful_count": review.helpful_count,
        "created_at": review.created_at.isoformat() if review.created_at else None,
        "updated_at": review.updated_at.isoformat() if review.updated_at else None,
    }
