import random
import unittest

from store.app_store import AppStore
from store.cart import (
    AddToCart,
    ClearCart,
    ClearShippingInfo,
    RemoveFromCart,
    SetShippingInfo,
    UpdateQuantity,
    reduce_cart,
)
from store.errors import StockLimitExceeded
from store.models import CartState
from tests.fixtures import SHIPPING, make_item


class CartReducerTestCase(unittest.TestCase):
    # ---------- Add ----------

    def test_add_new_item(self):
        t = reduce_cart(CartState(), AddToCart(make_item("a", stock=3), 2))
        self.assertEqual(len(t.state.items), 1)
        self.assertEqual(t.state.items[0].quantity, 2)
        self.assertEqual(t.notice.message, "Added to cart")

    def test_add_new_item_clamped_to_stock(self):
        t = reduce_cart(CartState(), AddToCart(make_item("a", stock=3), 10))
        self.assertEqual(t.state.items[0].quantity, 3)

    def test_add_out_of_stock_item_rejected(self):
        with self.assertRaises(StockLimitExceeded) as ctx:
            reduce_cart(CartState(), AddToCart(make_item("a", stock=0)))
        self.assertIn("out of stock", str(ctx.exception))

    def test_add_twice_merges(self):
        state = reduce_cart(CartState(), AddToCart(make_item("a", stock=5), 2)).state
        t = reduce_cart(state, AddToCart(make_item("a", stock=5), 3))
        self.assertEqual(len(t.state.items), 1)
        self.assertEqual(t.state.items[0].quantity, 5)
        self.assertEqual(t.notice.message, "Cart updated")

    def test_add_twice_over_stock_rejected(self):
        state = reduce_cart(CartState(), AddToCart(make_item("a", stock=5), 4)).state
        with self.assertRaises(StockLimitExceeded) as ctx:
            reduce_cart(state, AddToCart(make_item("a", stock=5), 2))
        self.assertEqual(ctx.exception.requested, 6)
        self.assertEqual(ctx.exception.stock, 5)
        self.assertEqual(state.items[0].quantity, 4)

    def test_readd_refreshes_stock_snapshot(self):
        state = reduce_cart(CartState(), AddToCart(make_item("a", stock=2), 1)).state
        state = reduce_cart(state, AddToCart(make_item("a", stock=10), 1)).state
        self.assertEqual(state.items[0].stock, 10)
        self.assertEqual(state.items[0].quantity, 2)

    def test_add_requires_positive_quantity(self):
        with self.assertRaises(ValueError):
            reduce_cart(CartState(), AddToCart(make_item("a"), 0))

    # ---------- Remove / SetQuantity ----------

    def test_remove_absent_is_noop(self):
        state = CartState((make_item("a"),))
        t = reduce_cart(state, RemoveFromCart("zzz"))
        self.assertIs(t.state, state)
        self.assertIsNone(t.notice)

    def test_remove_present(self):
        state = CartState((make_item("a"), make_item("b")))
        t = reduce_cart(state, RemoveFromCart("a"))
        self.assertEqual([i.product for i in t.state.items], ["b"])
        self.assertEqual(t.notice.message, "Removed from cart")

    def test_set_quantity_zero_equals_remove(self):
        state = CartState((make_item("a", quantity=2), make_item("b")))
        by_update = reduce_cart(state, UpdateQuantity("a", 0)).state
        by_remove = reduce_cart(state, RemoveFromCart("a")).state
        self.assertEqual(by_update, by_remove)

    def test_set_quantity_exact(self):
        state = CartState((make_item("a", stock=5),))
        t = reduce_cart(state, UpdateQuantity("a", 4))
        self.assertEqual(t.state.items[0].quantity, 4)

    def test_add_then_set_quantity_over_stock(self):
        state = reduce_cart(CartState(), AddToCart(make_item("A", stock=3))).state
        with self.assertRaises(StockLimitExceeded):
            reduce_cart(state, UpdateQuantity("A", 5))
        self.assertEqual(state.items[0].quantity, 1)

    def test_set_quantity_absent_is_noop(self):
        state = CartState()
        self.assertIs(reduce_cart(state, UpdateQuantity("a", 3)).state, state)

    # ---------- Clear / shipping ----------

    def test_clear_keeps_shipping(self):
        state = CartState((make_item("a"),), SHIPPING)
        t = reduce_cart(state, ClearCart())
        self.assertTrue(t.state.is_empty)
        self.assertEqual(t.state.shipping_info, SHIPPING)

    def test_shipping_set_and_clear(self):
        state = reduce_cart(CartState(), SetShippingInfo(SHIPPING)).state
        self.assertEqual(state.shipping_info, SHIPPING)
        state = reduce_cart(state, ClearShippingInfo()).state
        self.assertIsNone(state.shipping_info)

    def test_unknown_action(self):
        with self.assertRaises(TypeError):
            reduce_cart(CartState(), object())

    # ---------- Invariants ----------

    def test_random_sequences_keep_invariants(self):
        rng = random.Random(1234)
        stocks = {"a": 1, "b": 3, "c": 7, "d": 0}
        for _ in range(200):
            state = CartState()
            for _ in range(30):
                pid = rng.choice(list(stocks))
                kind = rng.randrange(3)
                if kind == 0:
                    action = AddToCart(make_item(pid, stock=stocks[pid]), rng.randint(1, 8))
                elif kind == 1:
                    action = RemoveFromCart(pid)
                else:
                    action = UpdateQuantity(pid, rng.randint(-1, 9))
                try:
                    state = reduce_cart(state, action).state
                except StockLimitExceeded:
                    pass

                ids = [i.product for i in state.items]
                self.assertEqual(len(ids), len(set(ids)))
                for item in state.items:
                    self.assertGreaterEqual(item.quantity, 1)
                    self.assertLessEqual(item.quantity, item.stock)


class AppStoreTestCase(unittest.TestCase):
    def test_dispatch_notifies_on_change_only(self):
        store = AppStore()
        seen = []
        store.subscribe(lambda prev, cur: seen.append((prev, cur)))

        notice = store.dispatch(AddToCart(make_item("a")))
        self.assertEqual(notice.message, "Added to cart")
        self.assertEqual(len(seen), 1)
        self.assertTrue(seen[0][0].cart.is_empty)
        self.assertEqual(seen[0][1].cart.item_count, 1)

        store.dispatch(RemoveFromCart("missing"))
        self.assertEqual(len(seen), 1)

    def test_rejected_change_does_not_notify(self):
        store = AppStore()
        store.dispatch(AddToCart(make_item("a", stock=1)))
        seen = []
        store.subscribe(lambda prev, cur: seen.append(cur))
        with self.assertRaises(StockLimitExceeded):
            store.dispatch(UpdateQuantity("a", 2))
        self.assertEqual(seen, [])
        self.assertEqual(store.cart.items[0].quantity, 1)

    def test_unsubscribe(self):
        store = AppStore()
        seen = []
        unsubscribe = store.subscribe(lambda prev, cur: seen.append(cur))
        unsubscribe()
        store.dispatch(AddToCart(make_item("a")))
        self.assertEqual(seen, [])

    def test_hydrate_does_not_notify(self):
        store = AppStore()
        seen = []
        store.subscribe(lambda prev, cur: seen.append(cur))
        store.hydrate([make_item("a")], SHIPPING, "tok")
        self.assertEqual(seen, [])
        self.assertTrue(store.session.loading)
        self.assertEqual(store.session.token, "tok")
        self.assertEqual(store.cart.shipping_info, SHIPPING)

    def test_unknown_action(self):
        with self.assertRaises(TypeError):
            AppStore().dispatch("nope")


if __name__ == "__main__":
    unittest.main()
