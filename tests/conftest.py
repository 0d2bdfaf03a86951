"""Pytest fixtures for storefront tests."""

import hashlib
import hmac
import json
import time
from decimal import Decimal

import pytest
import stripe
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from storefront import create_app
from storefront.config import TestingConfig
from storefront.errors import ProviderFailure
from storefront.extensions import db
from storefront.model import Cart, CartItem, Category, Product, User
from storefront.services import get_services
from storefront.services.stripe_gateway import PaymentIntentResult, StripeGateway
from storefront.utils.money import to_minor_units

WEBHOOK_SECRET = TestingConfig.STRIPE_WEBHOOK_SECRET


class FakeGateway(StripeGateway):
    """Stripe stand-in: no network, records every call.

    ``construct_event`` is inherited, so webhook signatures are verified by
    the real Stripe SDK.
    """

    def __init__(self):
        super().__init__("sk_test_dummy", "pk_test_dummy", "usd")
        self.customers = {}
        self.intents = {}
        self.created = []
        self.retrieved = []
        self.fail_with = None
        self.failing_ids = set()

    def create_or_retrieve_customer(self, email, name=None):
        if self.fail_with:
            raise self.fail_with
        if email not in self.customers:
            self.customers[email] = f"cus_test_{len(self.customers) + 1}"
        return self.customers[email]

    def create_payment_intent(self, order_id, amount, customer_id, currency=None, description=None):
        if self.fail_with:
            raise self.fail_with
        intent_id = f"pi_test_{len(self.created) + 1}"
        self.intents[intent_id] = "requires_payment_method"
        self.created.append({
            "intent_id": intent_id,
            "order_id": order_id,
            "amount": to_minor_units(amount),
            "customer_id": customer_id,
            "currency": currency,
            "description": description,
        })
        return PaymentIntentResult(intent_id, f"{intent_id}_secret_abc", "requires_payment_method")

    def retrieve_payment_intent(self, intent_id):
        self.retrieved.append(intent_id)
        if intent_id in self.failing_ids:
            raise ProviderFailure(f"Failed to retrieve payment intent: {intent_id}")
        return PaymentIntentResult(intent_id, None, self.intents.get(intent_id, "processing"))


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a ``Stripe-Signature`` header the way Stripe does."""
    timestamp = int(timestamp or time.time())
    signature = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def intent_event(event_type: str, intent_id: str, status: str = "succeeded") -> str:
    return json.dumps({
        "id": f"evt_{intent_id}_{event_type.rsplit('.', 1)[-1]}",
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": intent_id, "object": "payment_intent", "status": status}},
    })


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(gateway):
    app = create_app(TestingConfig, payment_gateway=gateway)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return get_services()


def _make_user(email, name, role="user"):
    user = User(email=email, name=name, password_hash=generate_password_hash("secret123"), role=role)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def alice(app):
    return _make_user("alice@example.com", "Alice")


@pytest.fixture
def bob(app):
    return _make_user("bob@example.com", "Bob")


@pytest.fixture
def admin(app):
    return _make_user("admin@example.com", "Admin", role="admin")


@pytest.fixture
def products(app):
    """Product A at 10.00 and product B at 5.00."""
    gadgets = Category(name="Gadgets")
    a = Product(name="Product A", description="first", price=Decimal("10.00"), category=gadgets)
    b = Product(name="Product B", description="second", price=Decimal("5.00"), category=gadgets)
    db.session.add_all([gadgets, a, b])
    db.session.commit()
    return {"a": a, "b": b}


@pytest.fixture
def fill_cart(app):
    def fill(user, lines):
        cart = Cart.query.filter_by(user_id=user.id).first()
        if cart is None:
            cart = Cart(user_id=user.id)
            db.session.add(cart)
        for product, quantity in lines:
            cart.items.append(CartItem(product_id=product.id, product=product, quantity=quantity))
        db.session.commit()
        return cart

    return fill


@pytest.fixture
def order(services, alice, products, fill_cart):
    """Alice's pending order worth 25.00."""
    fill_cart(alice, [(products["a"], 2), (products["b"], 1)])
    return services.orders.create_order(alice.email, "1 Main Street")


def auth_headers_for(user):
    return {"Authorization": f"Bearer {create_access_token(identity=str(user.id))}"}


@pytest.fixture
def alice_headers(alice):
    return auth_headers_for(alice)


@pytest.fixture
def admin_headers(admin):
    return auth_headers_for(admin)


@pytest.fixture
def post_event(client):
    """POST a signed payment-intent event to the webhook endpoint."""
    def post(event_type, intent_id, status="succeeded", secret=WEBHOOK_SECRET):
        payload = intent_event(event_type, intent_id, status)
        return client.post(
            "/payments/stripe/webhook",
            data=payload,
            headers={"Stripe-Signature": sign_payload(payload, secret)},
            content_type="application/json",
        )

    return post


@pytest.fixture
def headers_for(app):
    return auth_headers_for


@pytest.fixture
def sdk_event(app):
    """Build a payment-intent event through ``stripe.Webhook.construct_event``."""
    def build(event_type, intent_id, status="succeeded"):
        payload = intent_event(event_type, intent_id, status)
        return stripe.Webhook.construct_event(payload, sign_payload(payload), WEBHOOK_SECRET)

    return build


@pytest.fixture
def signed_delivery(app):
    """Raw body and ``Stripe-Signature`` header for a payment-intent event."""
    def build(event_type, intent_id, status="succeeded"):
        payload = intent_event(event_type, intent_id, status)
        return payload.encode("utf-8"), sign_payload(payload)

    return build
