# keeps the auth token and the cart across restarts in a local sqlite file
from __future__ import annotations

import asyncio
import json
import os.path
from contextlib import asynccontextmanager
from decimal import Decimal
from sqlite3 import Row
from typing import Any, Dict, List, Optional, Set, Tuple

import aiosqlite

from api.schemas import ShippingInfo
from store.app_store import AppStore
from store.models import CartItem, CartState, Snapshot
from utils.logger import get_logger

_logger = get_logger(__name__)

TOKEN_KEY = "token"
CART_KEY = "persist:skycart"
MEMORY_PATH = ":memory:"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def cart_to_json(cart: CartState) -> str:
    return json.dumps(
        {
            "items": [
                {
                    "product": i.product,
                    "name": i.name,
                    "price": str(i.price),
                    "image": i.image,
                    "stock": i.stock,
                    "quantity": i.quantity,
                }
                for i in cart.items
            ],
            "shipping_info": (
                cart.shipping_info.model_dump() if cart.shipping_info else None
            ),
        }
    )


def cart_from_json(raw: str) -> CartState:
    """
    Rebuild a saved cart. Lines that could never have been in a cart (no
    stock, quantity below 1, negative price, repeated product) are dropped
    and an over-stock quantity is clamped to the stock snapshot.
    """
    data: Dict[str, Any] = json.loads(raw)
    items: List[CartItem] = []
    seen: Set[str] = set()
    for i in data.get("items", []):
        item = CartItem(
            product=str(i["product"]),
            name=i["name"],
            price=Decimal(i["price"]),
            image=i.get("image", ""),
            stock=int(i["stock"]),
            quantity=int(i["quantity"]),
        )
        if (
            item.product in seen
            or item.quantity < 1
            or item.stock < 1
            or item.price < 0
        ):
            _logger.warning(f"Dropping invalid saved cart line for {item.product}")
            continue
        seen.add(item.product)
        items.append(item.with_quantity(min(item.quantity, item.stock)))
    info = data.get("shipping_info")
    return CartState(tuple(items), ShippingInfo(**info) if info else None)


class LocalStorage:
    """
    Tiny key/value store on top of aiosqlite.

    A file database gets a fresh connection per operation. ``:memory:`` keeps
    one connection open until ``aclose``, since each new connection would
    see a new, empty database.
    """

    def __init__(self, path: str):
        self.path = path
        self._memory_conn: Optional[aiosqlite.Connection] = None
        self._open_lock = asyncio.Lock()

    @property
    def in_memory(self) -> bool:
        return self.path == MEMORY_PATH

    async def _open(self) -> aiosqlite.Connection:
        if not self.in_memory and os.path.dirname(self.path):
            os.makedirs(os.path.dirname(self.path), exist_ok=True)
        conn = await aiosqlite.connect(self.path)
        conn.row_factory = Row
        await conn.executescript(_SCHEMA)
        await conn.commit()
        return conn

    @asynccontextmanager
    async def connect(self):
        if self.in_memory:
            async with self._open_lock:
                if self._memory_conn is None:
                    _logger.info("Using in-memory local storage, nothing survives a restart.")
                    self._memory_conn = await self._open()
            yield self._memory_conn
            return

        conn = await self._open()
        try:
            yield conn
        finally:
            await conn.close()

    async def aclose(self) -> None:
        if self._memory_conn is not None:
            await self._memory_conn.close()
            self._memory_conn = None

    async def get(self, key: str) -> Optional[str]:
        async with self.connect() as conn:
            cur = await conn.execute("SELECT value FROM kv WHERE key = ?;", (key,))
            row = await cur.fetchone()
            await cur.close()
        return row["value"] if row else None

    async def set(self, key: str, value: str) -> None:
        async with self.connect() as conn:
            await conn.execute(
                """
                INSERT INTO kv(key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value;
                """,
                (key, value),
            )
            await conn.commit()

    async def remove(self, key: str) -> None:
        async with self.connect() as conn:
            await conn.execute("DELETE FROM kv WHERE key = ?;", (key,))
            await conn.commit()

    # ---------------------------
    # Token & cart
    # ---------------------------

    async def load_token(self) -> Optional[str]:
        return await self.get(TOKEN_KEY)

    async def save_token(self, token: Optional[str]) -> None:
        if token:
            await self.set(TOKEN_KEY, token)
        else:
            await self.remove(TOKEN_KEY)

    async def load_cart(self) -> CartState:
        raw = await self.get(CART_KEY)
        if not raw:
            return CartState()
        try:
            return cart_from_json(raw)
        except (ValueError, KeyError, TypeError, ArithmeticError) as e:
            _logger.warning(f"Discarding unreadable saved cart: {e!r}")
            return CartState()

    async def save_cart(self, cart: CartState) -> None:
        await self.set(CART_KEY, cart_to_json(cart))

    async def restore(self) -> Tuple[CartState, Optional[str]]:
        return await self.load_cart(), await self.load_token()


class PersistenceObserver:
    """
    Store listener that mirrors the token and the cart into ``LocalStorage``.

    Writes run as tasks on the running loop, one at a time, and always write
    the store's current value, so the last change wins.
    """

    def __init__(self, store: AppStore, storage: LocalStorage):
        self.store = store
        self.storage = storage
        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribe = store.subscribe(self)

    def __call__(self, previous: Snapshot, current: Snapshot) -> None:
        pending: List[str] = []
        if previous.cart != current.cart:
            pending.append(CART_KEY)
        if previous.session.token != current.session.token:
            pending.append(TOKEN_KEY)
        if not pending:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.warning("No running event loop, state change not persisted.")
            return
        task = loop.create_task(self._write(pending))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _write(self, keys: List[str]) -> None:
        async with self._lock:
            try:
                if CART_KEY in keys:
                    await self.storage.save_cart(self.store.cart)
                if TOKEN_KEY in keys:
                    await self.storage.save_token(self.store.session.token)
            except (aiosqlite.Error, OSError) as e:
                # the next change writes the full current state again
                _logger.error(f"Could not persist {', '.join(keys)}: {e!r}")
                return
            _logger.debug(f"persisted {', '.join(keys)}")

    async def flush(self) -> None:
        """Wait for every pending write."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        self._unsubscribe()
