import asyncio
import unittest

import httpx

from api.client import ApiClient
from api.errors import ApiError, AuthorizationError, NetworkError, NotFoundError
from tests.fixtures import BASE_URL, FakeServer


class ApiClientTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.server = FakeServer()
        self.token = "tok-1"
        self.unauthorized_calls = 0

        def on_unauthorized():
            self.unauthorized_calls += 1

        self.client = ApiClient(
            BASE_URL,
            token_getter=lambda: self.token,
            on_unauthorized=on_unauthorized,
            transport=self.server.transport,
        )

    async def asyncTearDown(self):
        await self.client.aclose()

    async def test_bearer_header_attached(self):
        self.server.on("GET", "/auth/me", body={"ok": True})
        self.assertEqual(await self.client.get("/auth/me"), {"ok": True})
        req = self.server.requests[0]
        self.assertEqual(req.headers["Authorization"], "Bearer tok-1")

    async def test_no_header_without_token(self):
        self.token = None
        self.server.on("GET", "/products", body={"products": []})
        await self.client.get("/products", params={"page": 1})
        req = self.server.requests[0]
        self.assertNotIn("Authorization", req.headers)
        self.assertEqual(req.url.params["page"], "1")

    async def test_empty_body_returns_none(self):
        self.server.on(
            "DELETE", "/products/p1/review", handler=lambda r: httpx.Response(204)
        )
        self.assertIsNone(await self.client.delete("/products/p1/review"))

    async def test_error_message_and_fields(self):
        self.server.on(
            "POST",
            "/auth/register",
            status=400,
            body={"message": "Email taken", "errors": {"email": ["exists"]}},
        )
        with self.assertRaises(ApiError) as ctx:
            await self.client.post("/auth/register", {"email": "a@b.co"})
        self.assertEqual(ctx.exception.message, "Email taken")
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.errors, {"email": ["exists"]})

    async def test_error_without_body_uses_reason(self):
        self.server.on("GET", "/orders/me", handler=lambda r: httpx.Response(500))
        with self.assertRaises(ApiError) as ctx:
            await self.client.get("/orders/me")
        self.assertEqual(ctx.exception.message, "Internal Server Error")

    async def test_not_found(self):
        with self.assertRaises(NotFoundError):
            await self.client.get("/products/missing")

    async def test_network_error(self):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        self.server.on("GET", "/products", handler=fail)
        with self.assertRaises(NetworkError):
            await self.client.get("/products")

    async def test_timeout(self):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        self.server.on("GET", "/products", handler=slow)
        with self.assertRaises(NetworkError) as ctx:
            await self.client.get("/products")
        self.assertIn("too long", ctx.exception.message)

    async def test_malformed_json(self):
        self.server.on(
            "GET", "/products", handler=lambda r: httpx.Response(200, content=b"<html>")
        )
        with self.assertRaises(ApiError):
            await self.client.get("/products")

    async def test_unauthorized_fires_once_for_concurrent_failures(self):
        self.server.on("GET", "/auth/me", status=401, body={"message": "Login first"})
        self.server.on("GET", "/orders/me", status=401, body={"message": "Login first"})

        results = await asyncio.gather(
            self.client.get("/auth/me"),
            self.client.get("/orders/me"),
            self.client.get("/auth/me"),
            return_exceptions=True,
        )

        self.assertTrue(all(isinstance(r, AuthorizationError) for r in results))
        self.assertEqual(self.unauthorized_calls, 1)

    async def test_unauthorized_fires_again_for_new_token(self):
        self.server.on("GET", "/auth/me", status=401, body={"message": "Login first"})
        with self.assertRaises(AuthorizationError):
            await self.client.get("/auth/me")
        self.token = "tok-2"
        with self.assertRaises(AuthorizationError):
            await self.client.get("/auth/me")
        self.assertEqual(self.unauthorized_calls, 2)

    async def test_late_unauthorized_for_replaced_token_is_ignored(self):
        def relogin_then_reject(request):
            # the user logged in again while this request was in flight
            self.token = "tok-2"
            return httpx.Response(401, json={"message": "Login first"})

        self.server.on("GET", "/orders/me", handler=relogin_then_reject)
        with self.assertRaises(AuthorizationError):
            await self.client.get("/orders/me")
        self.assertEqual(self.unauthorized_calls, 0)

    async def test_unauthorized_without_token_is_ignored(self):
        self.token = None
        self.server.on("GET", "/orders/me", status=401, body={"message": "Login first"})
        with self.assertRaises(AuthorizationError):
            await self.client.get("/orders/me")
        self.assertEqual(self.unauthorized_calls, 0)


if __name__ == "__main__":
    unittest.main()
