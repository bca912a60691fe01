# src/api/crud.py
# one coroutine per SkyCart API operation; reads go through the query cache,
# writes invalidate the keys they make stale
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from api import schemas
from api.cache import FOREVER, QueryCache
from api.client import ApiClient
from api.errors import ApiError
from api.keys import auth_keys, order_keys, payment_keys, product_keys, user_keys
from utils.logger import get_logger

_logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

LIST_STALE_TIME = 30.0
USER_STALE_TIME = 5 * 60.0


@dataclass
class Api:
    """The HTTP client and the server-state cache that fronts it."""

    client: ApiClient
    cache: QueryCache


def _parse(model: Type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        _logger.warning(f"unexpected {model.__name__} payload: {e}")
        raise ApiError("Unexpected response from server.") from e


# ---------------------------
# Auth & Profile
# ---------------------------


async def get_current_user(api: Api) -> schemas.User:
    async def load():
        return _parse(schemas.User, await api.client.get("/auth/me"))

    return await api.cache.fetch(auth_keys.user, load, USER_STALE_TIME)


async def login(api: Api, email: str, password: str) -> schemas.AuthResponse:
    body = schemas.LoginRequest(email=email, password=password)
    res = _parse(
        schemas.AuthResponse, await api.client.post("/auth/login", body.model_dump())
    )
    api.cache.set_data(auth_keys.user, res.user)
    return res


async def register(
    api: Api, name: str, email: str, password: str
) -> schemas.AuthResponse:
    body = schemas.RegisterRequest(name=name, email=email, password=password)
    res = _parse(
        schemas.AuthResponse,
        await api.client.post("/auth/register", body.model_dump()),
    )
    api.cache.set_data(auth_keys.user, res.user)
    return res


async def logout(api: Api) -> None:
    await api.client.post("/auth/logout")


async def forgot_password(api: Api, email: str) -> schemas.MessageResponse:
    data = await api.client.post("/auth/password/forgot", {"email": email})
    return _parse(schemas.MessageResponse, data or {})


async def reset_password(
    api: Api, token: str, password: str, confirm_password: str
) -> schemas.MessageResponse:
    data = await api.client.put(
        f"/auth/password/reset/{token}",
        {"password": password, "confirm_password": confirm_password},
    )
    return _parse(schemas.MessageResponse, data or {})


async def update_password(
    api: Api, old_password: str, new_password: str
) -> schemas.MessageResponse:
    data = await api.client.put(
        "/auth/password/update",
        {"old_password": old_password, "new_password": new_password},
    )
    return _parse(schemas.MessageResponse, data or {})


async def update_profile(api: Api, name: str, email: str) -> schemas.User:
    user = _parse(
        schemas.User,
        await api.client.put("/users/profile", {"name": name, "email": email}),
    )
    api.cache.set_data(auth_keys.user, user)
    return user


# ---------------------------
# Products & Reviews
# ---------------------------


async def list_products(
    api: Api, filters: Optional[schemas.ProductFilters] = None
) -> schemas.ProductListResponse:
    filters = filters or schemas.ProductFilters()

    async def load():
        data = await api.client.get("/products", params=filters.to_params())
        return _parse(schemas.ProductListResponse, data)

    return await api.cache.fetch(product_keys.list(filters), load, LIST_STALE_TIME)


async def get_product(api: Api, product_id: str) -> schemas.Product:
    async def load():
        return _parse(schemas.Product, await api.client.get(f"/products/{product_id}"))

    return await api.cache.fetch(product_keys.detail(product_id), load)


async def list_admin_products(
    api: Api, page: int = 1, limit: int = 10
) -> schemas.ProductListResponse:
    async def load():
        data = await api.client.get(
            "/products/admin/products", params={"page": page, "limit": limit}
        )
        return _parse(schemas.ProductListResponse, data)

    return await api.cache.fetch(product_keys.admin() + (page, limit), load)


async def create_product(api: Api, product: schemas.ProductInput) -> schemas.Product:
    data = await api.client.post(
        "/products/admin/product/new", product.model_dump(mode="json")
    )
    api.cache.invalidate(product_keys.all)
    return _parse(schemas.Product, data)


async def update_product(
    api: Api, product_id: str, product: schemas.ProductInput
) -> schemas.Product:
    data = await api.client.put(
        f"/products/admin/product/{product_id}", product.model_dump(mode="json")
    )
    api.cache.invalidate(product_keys.detail(product_id))
    api.cache.invalidate(product_keys.lists())
    api.cache.invalidate(product_keys.admin())
    return _parse(schemas.Product, data)


async def delete_product(api: Api, product_id: str) -> schemas.MessageResponse:
    data = await api.client.delete(f"/products/admin/product/{product_id}")
    api.cache.invalidate(product_keys.all)
    return _parse(schemas.MessageResponse, data or {})


async def create_review(
    api: Api, product_id: str, review: schemas.ReviewInput
) -> schemas.MessageResponse:
    data = await api.client.post(f"/products/{product_id}/review", review.model_dump())
    api.cache.invalidate(product_keys.detail(product_id))
    return _parse(schemas.MessageResponse, data or {})


async def delete_review(api: Api, product_id: str) -> schemas.MessageResponse:
    """Delete the current user's own review of a product."""
    data = await api.client.delete(f"/products/{product_id}/review")
    api.cache.invalidate(product_keys.detail(product_id))
    return _parse(schemas.MessageResponse, data or {})


async def delete_reviews_admin(api: Api, product_id: str) -> schemas.MessageResponse:
    data = await api.client.delete(
        "/products/admin/reviews", params={"productId": product_id}
    )
    api.cache.invalidate(product_keys.detail(product_id))
    return _parse(schemas.MessageResponse, data or {})


# ---------------------------
# Orders
# ---------------------------


async def create_order(api: Api, order: schemas.OrderCreate) -> schemas.Order:
    data = await api.client.post("/orders/new", order.model_dump(mode="json"))
    api.cache.invalidate(order_keys.all)
    return _parse(schemas.Order, data)


async def list_my_orders(
    api: Api, page: int = 1, limit: int = 10
) -> schemas.OrderListResponse:
    async def load():
        data = await api.client.get("/orders/me", params={"page": page, "limit": limit})
        return _parse(schemas.OrderListResponse, data)

    return await api.cache.fetch(order_keys.mine() + (page, limit), load)


async def get_order(api: Api, order_id: str) -> schemas.Order:
    async def load():
        return _parse(schemas.Order, await api.client.get(f"/orders/{order_id}"))

    return await api.cache.fetch(order_keys.detail(order_id), load)


async def cancel_order(api: Api, order_id: str) -> schemas.Order:
    data = await api.client.put(f"/orders/{order_id}/cancel")
    api.cache.invalidate(order_keys.detail(order_id))
    api.cache.invalidate(order_keys.mine())
    return _parse(schemas.Order, data)


async def list_admin_orders(
    api: Api, page: int = 1, limit: int = 10
) -> schemas.OrderListResponse:
    async def load():
        data = await api.client.get(
            "/orders/admin/orders", params={"page": page, "limit": limit}
        )
        return _parse(schemas.OrderListResponse, data)

    return await api.cache.fetch(order_keys.admin() + (page, limit), load)


async def get_admin_order(api: Api, order_id: str) -> schemas.Order:
    async def load():
        return _parse(
            schemas.Order, await api.client.get(f"/orders/admin/order/{order_id}")
        )

    return await api.cache.fetch(order_keys.admin_detail(order_id), load)


async def update_order_status(
    api: Api, order_id: str, status: schemas.OrderStatus
) -> schemas.Order:
    data = await api.client.put(
        f"/orders/admin/order/{order_id}", {"status": schemas.OrderStatus(status).value}
    )
    # admin() covers both the admin list pages and this order's admin detail
    api.cache.invalidate(order_keys.admin())
    api.cache.invalidate(order_keys.detail(order_id))
    api.cache.invalidate(order_keys.stats())
    return _parse(schemas.Order, data)


async def get_sales_stats(api: Api) -> schemas.SalesStats:
    async def load():
        return _parse(schemas.SalesStats, await api.client.get("/orders/admin/stats"))

    return await api.cache.fetch(order_keys.stats(), load)


# ---------------------------
# Payments
# ---------------------------


async def create_payment_intent(
    api: Api, amount: int, currency: str = "usd"
) -> schemas.PaymentIntentResponse:
    """``amount`` is in minor units (cents)."""
    data = await api.client.post(
        "/payments/process", {"amount": amount, "currency": currency}
    )
    return _parse(schemas.PaymentIntentResponse, data)


async def get_stripe_key(api: Api) -> str:
    async def load():
        data = await api.client.get("/payments/stripeapi")
        return _parse(schemas.StripeKeyResponse, data).stripe_api_key

    return await api.cache.fetch(payment_keys.stripe_key, load, FOREVER)


# ---------------------------
# Users (admin)
# ---------------------------


async def list_admin_users(
    api: Api, page: int = 1, limit: int = 10
) -> schemas.UserListResponse:
    async def load():
        data = await api.client.get(
            "/users/admin/users", params={"page": page, "limit": limit}
        )
        return _parse(schemas.UserListResponse, data)

    return await api.cache.fetch(user_keys.admin() + (page, limit), load)


async def get_admin_user(api: Api, user_id: str) -> schemas.User:
    async def load():
        return _parse(schemas.User, await api.client.get(f"/users/admin/user/{user_id}"))

    return await api.cache.fetch(user_keys.admin_detail(user_id), load)


async def update_user(
    api: Api,
    user_id: str,
    name: Optional[str] = None,
    email: Optional[str] = None,
    role: Optional[schemas.Role] = None,
) -> schemas.User:
    body = {
        k: v
        for k, v in {"name": name, "email": email, "role": role}.items()
        if v is not None
    }
    data = await api.client.put(f"/users/admin/user/{user_id}", body)
    api.cache.invalidate(user_keys.admin())
    return _parse(schemas.User, data)


async def delete_user(api: Api, user_id: str) -> schemas.MessageResponse:
    data = await api.client.delete(f"/users/admin/user/{user_id}")
    api.cache.invalidate(user_keys.admin())
    return _parse(schemas.MessageResponse, data or {})
