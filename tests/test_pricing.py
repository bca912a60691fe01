import random
import unittest
from decimal import Decimal

from store.pricing import (
    DEFAULT_POLICY,
    PricingPolicy,
    amount_to_free_shipping,
    compute_totals,
    format_price,
    to_cents,
)
from tests.fixtures import make_item


class PricingTestCase(unittest.TestCase):
    def test_over_threshold_ships_free(self):
        t = compute_totals([make_item("a", price="150", stock=5, quantity=1)])
        self.assertEqual(t.subtotal, Decimal("150"))
        self.assertEqual(t.shipping_price, Decimal("0"))
        self.assertEqual(to_cents(t.tax_price), Decimal("15.00"))
        self.assertEqual(to_cents(t.total_price), Decimal("165.00"))
        self.assertTrue(t.free_shipping)

    def test_under_threshold_pays_flat_fee(self):
        t = compute_totals([make_item("a", price="40", stock=5, quantity=2)])
        self.assertEqual(t.subtotal, Decimal("80"))
        self.assertEqual(t.shipping_price, Decimal("10"))
        self.assertEqual(to_cents(t.tax_price), Decimal("8.00"))
        self.assertEqual(to_cents(t.total_price), Decimal("98.00"))

    def test_exactly_threshold_is_not_free(self):
        t = compute_totals([make_item("a", price="100", quantity=1)])
        self.assertEqual(t.shipping_price, Decimal("10"))

    def test_empty_cart(self):
        t = compute_totals([])
        self.assertEqual(t.subtotal, Decimal("0"))
        self.assertEqual(t.total_price, Decimal("10"))

    def test_no_float_drift(self):
        items = [make_item(str(i), price="0.10", stock=10, quantity=1) for i in range(3)]
        self.assertEqual(compute_totals(items).subtotal, Decimal("0.30"))

    def test_pure_and_sum_exact(self):
        rng = random.Random(42)
        for _ in range(100):
            items = [
                make_item(
                    str(i),
                    price=f"{rng.randint(1, 20000) / 100:.2f}",
                    stock=10,
                    quantity=rng.randint(1, 10),
                )
                for i in range(rng.randint(0, 6))
            ]
            first = compute_totals(items)
            second = compute_totals(items)
            self.assertEqual(first, second)
            self.assertEqual(
                first.total_price,
                first.subtotal + first.shipping_price + first.tax_price,
            )

    def test_rounded_components_sum(self):
        t = compute_totals([make_item("a", price="33.33", quantity=1)]).rounded()
        self.assertEqual(t.tax_price, Decimal("3.33"))
        self.assertEqual(t.total_price, t.subtotal + t.shipping_price + t.tax_price)
        self.assertEqual(t.total_price, Decimal("46.66"))

    def test_amount_minor(self):
        t = compute_totals([make_item("a", price="150", quantity=1)])
        self.assertEqual(t.amount_minor, 16500)

    def test_custom_policy(self):
        policy = PricingPolicy(
            free_shipping_threshold=Decimal("50"),
            flat_shipping_fee=Decimal("5"),
            tax_rate=Decimal("0.15"),
        )
        t = compute_totals([make_item("a", price="40", quantity=1)], policy)
        self.assertEqual(t.shipping_price, Decimal("5"))
        self.assertEqual(t.tax_price, Decimal("6.00"))

    def test_amount_to_free_shipping(self):
        self.assertEqual(amount_to_free_shipping(Decimal("80")), Decimal("20"))
        self.assertEqual(amount_to_free_shipping(Decimal("120")), Decimal("0"))
        self.assertEqual(DEFAULT_POLICY.tax_rate, Decimal("0.10"))

    def test_format_price(self):
        self.assertEqual(format_price(Decimal("1234.5")), "$1,234.50")
        self.assertEqual(format_price(Decimal("0.005")), "$0.01")


if __name__ == "__main__":
    unittest.main()
