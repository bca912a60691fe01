# shared builders for the test suite
import json
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

import httpx

from api.cache import QueryCache
from api.client import ApiClient
from api.crud import Api
from api.schemas import Product, ShippingInfo, User
from store.models import CartItem

BASE_URL = "http://api.test/api/v1"

SHIPPING = ShippingInfo(
    address="1 Infinite Loop",
    city="Cupertino",
    country="United States",
    postal_code="95014",
    phone_no="4085551234",
)


def make_item(
    product: str = "p1", price: str = "10", stock: int = 5, quantity: int = 1
) -> CartItem:
    return CartItem(
        product=product,
        name=f"Product {product}",
        price=Decimal(price),
        image=f"https://img.test/{product}.png",
        stock=stock,
        quantity=quantity,
    )


def make_product(product_id: str = "p1", price: float = 10.0, stock: int = 5) -> Dict:
    return {
        "id": product_id,
        "name": f"Product {product_id}",
        "price": price,
        "description": "A product used in tests.",
        "ratings": 4.5,
        "images": [{"image": f"https://img.test/{product_id}.png"}],
        "category": "Electronics",
        "seller": "ACME",
        "stock": stock,
        "num_of_reviews": 0,
        "reviews": [],
    }


def make_user(user_id: str = "u1", role: str = "user") -> Dict:
    return {"id": user_id, "name": "Jane Doe", "email": "jane@example.com", "role": role}


def make_order(order_id: str = "o1", status: str = "Processing", total: float = 165.0) -> Dict:
    return {
        "id": order_id,
        "shipping_info": SHIPPING.model_dump(),
        "order_items": [
            {"product": "p1", "name": "Product p1", "price": 150.0, "quantity": 1}
        ],
        "items_price": 150.0,
        "tax_price": 15.0,
        "shipping_price": 0.0,
        "total_price": total,
        "payment_info": {"id": "pi_1", "status": "succeeded"},
        "order_status": status,
    }


Route = Callable[[httpx.Request], httpx.Response]


class FakeServer:
    """
    Routes requests by (method, path) to canned responses and records every
    request it sees.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, status: int = 200, body=None, handler: Optional[Route] = None):
        if handler is None:

            def handler(request, status=status, body=body):
                return httpx.Response(status, json=body)

        self.routes[(method, "/api/v1" + path)] = handler
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "Route not found"})
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and r.url.path == "/api/v1" + path
        ]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content) if request.content else None


def make_api(server: FakeServer, token_getter=None, on_unauthorized=None) -> Api:
    client = ApiClient(
        BASE_URL,
        token_getter=token_getter,
        on_unauthorized=on_unauthorized,
        transport=server.transport,
    )
    return Api(client, QueryCache())


def user_model(role: str = "user") -> User:
    return User(**make_user(role=role))


def product_model(product_id: str = "p1", price: float = 10.0, stock: int = 5) -> Product:
    return Product(**make_product(product_id, price, stock))
