import unittest

from api.schemas import OrderCreate
from store.app_store import AppStore
from store.cart import AddToCart, ClearCart, ClearShippingInfo, SetShippingInfo
from store.checkout import CheckoutFlow, CheckoutStep, build_order, resolve_entry
from store.errors import (
    CheckoutRedirect,
    OrderCreationFailed,
    PaymentFailed,
    ValidationError,
)
from store.forms import CardForm
from store.guards import GateDecision, gate
from store.models import CartState, SessionState
from store.payment import PaymentResult, intent_id_from_secret
from store.pricing import compute_totals
from tests.fixtures import SHIPPING, FakeServer, make_api, make_item, make_order, user_model

CARD = CardForm(number="4242 4242 4242 4242", exp_month=12, exp_year="30", cvc="123")


class FakeGateway:
    def __init__(self, result: PaymentResult):
        self.result = result
        self.calls = []

    async def confirm_card_payment(self, client_secret, card):
        self.calls.append((client_secret, card))
        return self.result


class GuardTestCase(unittest.TestCase):
    def test_confirm_with_empty_cart_goes_to_cart(self):
        for info in (None, SHIPPING):
            cart = CartState((), info)
            self.assertEqual(resolve_entry(CheckoutStep.CONFIRM, cart), CheckoutStep.CART)
            self.assertEqual(resolve_entry(CheckoutStep.PAYMENT, cart), CheckoutStep.CART)
            self.assertEqual(resolve_entry(CheckoutStep.SHIPPING, cart), CheckoutStep.CART)

    def test_confirm_without_shipping_goes_to_shipping(self):
        cart = CartState((make_item(),))
        self.assertEqual(resolve_entry(CheckoutStep.CONFIRM, cart), CheckoutStep.SHIPPING)
        self.assertEqual(resolve_entry(CheckoutStep.PAYMENT, cart), CheckoutStep.SHIPPING)

    def test_allowed_entries(self):
        cart = CartState((make_item(),), SHIPPING)
        for step in (CheckoutStep.SHIPPING, CheckoutStep.CONFIRM, CheckoutStep.PAYMENT):
            self.assertEqual(resolve_entry(step, cart), step)
        self.assertEqual(resolve_entry(CheckoutStep.CART, CartState()), CheckoutStep.CART)

    def test_success_needs_order(self):
        self.assertEqual(resolve_entry(CheckoutStep.SUCCESS, CartState()), CheckoutStep.CART)
        self.assertEqual(
            resolve_entry(CheckoutStep.SUCCESS, CartState(), has_order=True),
            CheckoutStep.SUCCESS,
        )

    def test_guards_reevaluated_on_every_entry(self):
        store = AppStore()
        store.dispatch(AddToCart(make_item()))
        store.dispatch(SetShippingInfo(SHIPPING))
        flow = CheckoutFlow(store, api=None)
        self.assertEqual(flow.enter(CheckoutStep.CONFIRM), CheckoutStep.CONFIRM)
        store.dispatch(ClearCart())
        self.assertEqual(flow.enter(CheckoutStep.CONFIRM), CheckoutStep.CART)
        self.assertEqual(flow.step, CheckoutStep.CART)


class AuthGateTestCase(unittest.TestCase):
    def test_loading(self):
        result = gate(SessionState(token="t", loading=True), location="orders")
        self.assertEqual(result.decision, GateDecision.LOADING)

    def test_login_keeps_location(self):
        result = gate(SessionState(), location="orders")
        self.assertEqual(result.decision, GateDecision.LOGIN)
        self.assertEqual(result.return_to, "orders")

    def test_non_admin_sent_home(self):
        session = SessionState(user=user_model("user"), token="t")
        self.assertEqual(
            gate(session, requires_admin=True).decision, GateDecision.HOME
        )
        self.assertEqual(gate(session).decision, GateDecision.RENDER)

    def test_admin_renders(self):
        session = SessionState(user=user_model("admin"), token="t")
        self.assertEqual(
            gate(session, requires_admin=True).decision, GateDecision.RENDER
        )


class ShippingStepTestCase(unittest.TestCase):
    def test_submit_shipping_valid(self):
        store = AppStore()
        store.dispatch(AddToCart(make_item()))
        flow = CheckoutFlow(store, api=None)
        step = flow.submit_shipping(**SHIPPING.model_dump())
        self.assertEqual(step, CheckoutStep.CONFIRM)
        self.assertEqual(store.cart.shipping_info, SHIPPING)

    def test_submit_shipping_invalid(self):
        store = AppStore()
        store.dispatch(AddToCart(make_item()))
        flow = CheckoutFlow(store, api=None)
        fields = dict(SHIPPING.model_dump(), address="x", phone_no="123")
        with self.assertRaises(ValidationError) as ctx:
            flow.submit_shipping(**fields)
        self.assertEqual(set(ctx.exception.errors), {"address", "phone_no"})
        self.assertIsNone(store.cart.shipping_info)


class BuildOrderTestCase(unittest.TestCase):
    def test_build_order(self):
        cart = CartState((make_item("a", price="40", quantity=2),), SHIPPING)
        order = build_order(cart, compute_totals(cart.items), "pi_1")
        self.assertIsInstance(order, OrderCreate)
        body = order.model_dump(mode="json")
        self.assertEqual(body["items_price"], 80.0)
        self.assertEqual(body["shipping_price"], 10.0)
        self.assertEqual(body["tax_price"], 8.0)
        self.assertEqual(body["payment_info"], {"id": "pi_1", "status": "succeeded"})
        self.assertEqual(body["order_items"][0]["quantity"], 2)

    def test_intent_id_from_secret(self):
        self.assertEqual(intent_id_from_secret("pi_123_secret_abc"), "pi_123")


class PayTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.server = FakeServer()
        self.server.on(
            "POST",
            "/payments/process",
            body={"client_secret": "pi_1_secret_x", "payment_intent_id": "pi_1"},
        )
        self.api = make_api(self.server, token_getter=lambda: "tok")
        self.store = AppStore()
        self.store.dispatch(AddToCart(make_item("a", price="150", stock=3)))
        self.store.dispatch(SetShippingInfo(SHIPPING))

    async def asyncTearDown(self):
        await self.api.client.aclose()

    async def test_success_clears_cart_and_shipping(self):
        self.server.on("POST", "/orders/new", body=make_order("o1"))
        gateway = FakeGateway(PaymentResult("succeeded"))
        flow = CheckoutFlow(self.store, self.api, gateway)

        order = await flow.pay(CARD)

        self.assertEqual(order.id, "o1")
        self.assertEqual(flow.step, CheckoutStep.SUCCESS)
        self.assertTrue(self.store.cart.is_empty)
        self.assertIsNone(self.store.cart.shipping_info)
        self.assertEqual(flow.enter(CheckoutStep.SUCCESS), CheckoutStep.SUCCESS)

        intent_req = self.server.calls("POST", "/payments/process")[0]
        self.assertEqual(FakeServer.body(intent_req), {"amount": 16500, "currency": "usd"})
        order_req = self.server.calls("POST", "/orders/new")[0]
        self.assertEqual(FakeServer.body(order_req)["payment_info"]["id"], "pi_1")
        self.assertEqual(gateway.calls[0][0], "pi_1_secret_x")

    async def test_declined_payment_stays_on_payment(self):
        gateway = FakeGateway(PaymentResult("failed", "Your card was declined."))
        flow = CheckoutFlow(self.store, self.api, gateway)

        with self.assertRaises(PaymentFailed) as ctx:
            await flow.pay(CARD)

        self.assertIn("declined", str(ctx.exception))
        self.assertEqual(flow.step, CheckoutStep.PAYMENT)
        self.assertFalse(self.store.cart.is_empty)
        self.assertEqual(self.server.calls("POST", "/orders/new"), [])

    async def test_intent_failure_is_payment_failure(self):
        self.server.on(
            "POST", "/payments/process", status=500, body={"message": "Stripe down"}
        )
        flow = CheckoutFlow(self.store, self.api, FakeGateway(PaymentResult("succeeded")))
        with self.assertRaises(PaymentFailed) as ctx:
            await flow.pay(CARD)
        self.assertEqual(str(ctx.exception), "Stripe down")

    async def test_order_failure_after_capture(self):
        self.server.on("POST", "/orders/new", status=500, body={"message": "DB error"})
        flow = CheckoutFlow(self.store, self.api, FakeGateway(PaymentResult("succeeded")))

        with self.assertLogs("store.checkout", level="ERROR"):
            with self.assertRaises(OrderCreationFailed) as ctx:
                await flow.pay(CARD)

        self.assertEqual(ctx.exception.payment_intent_id, "pi_1")
        self.assertEqual(flow.step, CheckoutStep.PAYMENT)
        self.assertIsNone(flow.order)
        self.assertFalse(self.store.cart.is_empty)
        self.assertIsNotNone(self.store.cart.shipping_info)

    async def test_no_gateway(self):
        flow = CheckoutFlow(self.store, self.api, None)
        with self.assertRaises(PaymentFailed):
            await flow.pay(CARD)
        self.assertEqual(self.server.requests, [])

    async def test_emptied_cart_redirects_without_error(self):
        flow = CheckoutFlow(self.store, self.api, FakeGateway(PaymentResult("succeeded")))
        self.assertEqual(flow.enter(CheckoutStep.PAYMENT), CheckoutStep.PAYMENT)
        self.store.dispatch(ClearCart())

        with self.assertRaises(CheckoutRedirect) as ctx:
            await flow.pay(CARD)

        self.assertNotIsInstance(ctx.exception, PaymentFailed)
        self.assertEqual(ctx.exception.step, CheckoutStep.CART)
        self.assertEqual(flow.step, CheckoutStep.CART)
        self.assertEqual(self.server.requests, [])

    async def test_missing_shipping_redirects_to_shipping(self):
        self.store.dispatch(ClearShippingInfo())
        flow = CheckoutFlow(self.store, self.api, FakeGateway(PaymentResult("succeeded")))
        with self.assertRaises(CheckoutRedirect) as ctx:
            await flow.pay(CARD)
        self.assertEqual(ctx.exception.step, CheckoutStep.SHIPPING)


if __name__ == "__main__":
    unittest.main()
