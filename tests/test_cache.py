import asyncio
import unittest

from api.cache import FOREVER, QueryCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class QueryCacheTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = QueryCache(clock=self.clock)
        self.loads = 0

    async def loader(self, value="v", delay=0.0):
        self.loads += 1
        if delay:
            await asyncio.sleep(delay)
        return f"{value}{self.loads}"

    async def test_concurrent_fetches_share_one_load(self):
        results = await asyncio.gather(
            *(self.cache.fetch(("orders", "1"), lambda: self.loader(delay=0.01)) for _ in range(5))
        )
        self.assertEqual(self.loads, 1)
        self.assertEqual(set(results), {"v1"})

    async def test_stale_time(self):
        key = ("products", "list")
        self.assertEqual(await self.cache.fetch(key, self.loader, stale_time=30), "v1")
        self.clock.now = 10
        self.assertEqual(await self.cache.fetch(key, self.loader, stale_time=30), "v1")
        self.clock.now = 31
        self.assertEqual(await self.cache.fetch(key, self.loader, stale_time=30), "v2")

    async def test_zero_stale_time_always_reloads(self):
        key = ("orders", "detail", "1")
        await self.cache.fetch(key, self.loader)
        await self.cache.fetch(key, self.loader)
        self.assertEqual(self.loads, 2)
        self.assertEqual(self.cache.get_data(key), "v2")

    async def test_forever(self):
        key = ("stripe", "key")
        await self.cache.fetch(key, self.loader, FOREVER)
        self.clock.now = 10**9
        await self.cache.fetch(key, self.loader, FOREVER)
        self.assertEqual(self.loads, 1)

    async def test_failed_load_not_cached(self):
        async def boom():
            raise RuntimeError("down")

        key = ("orders", "my")
        with self.assertRaises(RuntimeError):
            await self.cache.fetch(key, boom)
        self.assertNotIn(key, self.cache)
        self.assertEqual(await self.cache.fetch(key, self.loader), "v1")

    async def test_invalidate_prefix(self):
        self.cache.set_data(("orders", "detail", "1"), 1)
        self.cache.set_data(("orders", "admin", 1, 10), 2)
        self.cache.set_data(("orders", "admin", "detail", "1"), 3)
        self.cache.set_data(("products", "detail", "1"), 4)

        self.assertEqual(self.cache.invalidate(("orders", "admin")), 2)
        self.assertIn(("orders", "detail", "1"), self.cache)
        self.assertIn(("products", "detail", "1"), self.cache)
        self.assertEqual(self.cache.invalidate(("orders",)), 1)
        self.assertEqual(len(self.cache), 1)

    async def test_invalidated_inflight_result_is_dropped(self):
        key = ("orders", "detail", "1")
        task = asyncio.ensure_future(self.cache.fetch(key, lambda: self.loader(delay=0.01)))
        await asyncio.sleep(0)
        self.cache.invalidate(("orders",))
        self.assertEqual(await task, "v1")
        self.assertNotIn(key, self.cache)

    async def test_cancelled_caller_does_not_cancel_shared_load(self):
        key = ("orders", "detail", "1")
        first = asyncio.ensure_future(self.cache.fetch(key, lambda: self.loader(delay=0.02)))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(self.cache.fetch(key, lambda: self.loader(delay=0.02)))
        await asyncio.sleep(0)
        first.cancel()
        self.assertEqual(await second, "v1")
        self.assertEqual(self.loads, 1)

    async def test_clear(self):
        self.cache.set_data(("auth", "user"), "me")
        self.cache.clear()
        self.assertEqual(len(self.cache), 0)
        self.assertIsNone(self.cache.get_data(("auth", "user")))


if __name__ == "__main__":
    unittest.main()
