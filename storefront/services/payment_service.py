# storefront/services/payment_service.py
from datetime import datetime, timedelta

import structlog

from ..cache import ORDER_BY_ID, ORDERS, PAYMENTS, ViewCache, cache_key
from ..errors import (
    AlreadyProcessed, InvalidAmount, OrderNotFound, PaymentNotFound, WebhookNotConfigured,
)
from ..extensions import db
from ..model import Order, OrderStatus, Payment, PaymentMethod, PaymentStatus
from ..utils.clock import utcnow
from ..utils.money import amounts_match, parse_money, round_money, to_float
from ..utils.tx import unit_of_work
from .auth_service import find_user
from .stripe_gateway import StripeGateway

logger = structlog.get_logger(component="payment_service")

# Stripe event type -> local status; every other event type is ignored
WEBHOOK_EVENT_STATUS = {
    "payment_intent.succeeded": PaymentStatus.SUCCESS,
    "payment_intent.payment_failed": PaymentStatus.FAILED,
    "payment_intent.canceled": PaymentStatus.FAILED,
}

_PENDING_INTENT_STATES = {
    "processing",
    "requires_payment_method",
    "requires_confirmation",
    "requires_action",
    "requires_capture",
}


def _event_field(event, *path):
    """Walk ``path`` through a Stripe event by subscript.

    Works for plain dicts and for SDK ``StripeObject``s, which are not dict
    subclasses on current stripe releases (no ``.get``).
    """
    value = event
    for key in path:
        try:
            value = value[key]
        except (KeyError, TypeError):
            return None
    return value


def map_provider_status(provider_status: str | None) -> PaymentStatus:
    """Map a Stripe payment-intent status onto the local payment status."""
    status = (provider_status or "").strip().lower()
    if status == "succeeded":
        return PaymentStatus.SUCCESS
    if status in _PENDING_INTENT_STATES:
        return PaymentStatus.PENDING
    if status in {"canceled", "payment_failed"}:
        return PaymentStatus.FAILED
    logger.warning("unknown_provider_status", provider_status=provider_status)
    return PaymentStatus.PENDING


class PaymentService:
    def __init__(self, gateway: StripeGateway, cache: ViewCache,
                 webhook_secret: str | None = None, default_currency: str = "usd"):
        self.gateway = gateway
        self.cache = cache
        self.webhook_secret = webhook_secret
        self.default_currency = default_currency

    # ------------------------------------------------------------------ #
    # Payment intent creation
    # ------------------------------------------------------------------ #
    def make_payment(self, email: str, order_id: int, amount, currency: str | None = None,
                     description: str | None = None) -> dict:
        """Create a Stripe payment intent for an order and record it as pending.

        Provider errors surface as ProviderFailure and are not retried here;
        the caller may simply try again.
        """
        logger.info("payment_intent_requested", email=email, order_id=order_id, amount=str(amount))
        user = find_user(email)

        order = db.session.get(Order, order_id)
        if not order:
            logger.warning("payment_order_missing", order_id=order_id)
            raise OrderNotFound(f"Order with id {order_id} not found")
        if order.user_id != user.id:
            logger.warning("payment_order_not_owned", order_id=order_id, email=email)
            raise OrderNotFound("Order does not belong to user")

        value = parse_money(amount)
        if value is None or value <= 0:
            raise InvalidAmount("Amount must be greater than 0")
        if not amounts_match(order.total_amount, value):
            logger.warning("payment_amount_mismatch", order_id=order_id,
                           order_total=str(order.total_amount), amount=str(value))
            raise InvalidAmount("Payment amount does not match order total")

        already_paid = (Payment.query
                        .filter_by(order_id=order.id, status=PaymentStatus.SUCCESS.value)
                        .first())
        if already_paid:
            logger.warning("payment_already_processed", order_id=order_id, payment_id=already_paid.id)
            raise AlreadyProcessed()

        customer_id = self.gateway.create_or_retrieve_customer(user.email, user.name or user.email)
        intent = self.gateway.create_payment_intent(
            order.id,
            value,
            customer_id,
            currency or self.default_currency,
            description or f"Payment for order #{order.id}",
        )

        with unit_of_work():
            now = utcnow()
            payment = Payment(
                order_id=order.id,
                amount=round_money(value),
                method=PaymentMethod.CREDIT_CARD.value,
                status=PaymentStatus.PENDING.value,
                transaction_id=intent.intent_id,
                payment_date=now,
                created_at=now,
                updated_at=now,
            )
            db.session.add(payment)

        logger.info("payment_intent_recorded", payment_id=payment.id, intent_id=intent.intent_id)
        return {
            "payment_id": payment.id,
            "order_id": order.id,
            "amount": to_float(payment.amount),
            "status": PaymentStatus.PENDING.value,
            "transaction_id": intent.intent_id,
            "stripe_payment_intent_id": intent.intent_id,
            "stripe_customer_id": customer_id,
            "client_secret": intent.client_secret,
            "payment_date": payment.payment_date.isoformat(),
            "message": "Payment intent created. Use client_secret to complete payment on frontend.",
        }

    def create_payment(self, email: str, order_id: int, currency: str | None = None) -> dict:
        """Same as ``make_payment`` with the amount taken from the order itself."""
        user = find_user(email)
        order = db.session.get(Order, order_id)
        if not order or order.user_id != user.id:
            raise OrderNotFound(f"Order with id {order_id} not found")
        if order.total_amount is None or order.total_amount <= 0:
            raise InvalidAmount("Order amount is invalid for payment")
        return self.make_payment(email, order_id, order.total_amount, currency)

    def get_payment(self, email: str, payment_id: int) -> dict:
        def load():
            user = find_user(email)
            payment = db.session.get(Payment, payment_id)
            if not payment:
                raise PaymentNotFound(f"Payment with id {payment_id} not found")
            if payment.order is None or payment.order.user_id != user.id:
                raise PaymentNotFound("Payment does not belong to user")
            return payment.as_api()

        return self.cache.get_or_load(PAYMENTS, cache_key(email, payment_id), load)

    def publishable_key(self) -> str:
        return self.gateway.publishable_key

    # ------------------------------------------------------------------ #
    # Status application (shared by webhook and reconciliation)
    # ------------------------------------------------------------------ #
    def apply_provider_status(self, intent_id: str, status: PaymentStatus, now: datetime | None = None) -> bool:
        """Apply ``status`` to the payment behind ``intent_id``.

        The row is locked for the read-modify-write. Re-applying the current
        status is a no-op. Success is never replaced, and a failed payment may
        only move to success. Returns True when something changed.
        """
        status = PaymentStatus(status)
        now = now or utcnow()
        order_confirmed = False

        with unit_of_work():
            payment = (Payment.query
                       .filter_by(transaction_id=intent_id)
                       .with_for_update()
                       .first())
            if payment is None:
                raise PaymentNotFound(f"Payment not found for transaction: {intent_id}")

            current = payment.status_enum
            if current is status:
                logger.debug("payment_status_unchanged", payment_id=payment.id, status=status.value)
                return False
            if not current.can_become(status):
                logger.warning("payment_status_transition_ignored", payment_id=payment.id,
                               current=current.value, requested=status.value)
                return False

            payment.status = status.value
            payment.updated_at = now
            if status is PaymentStatus.SUCCESS:
                payment.payment_date = now
                order = payment.order
                if order.status == OrderStatus.PENDING.value:
                    order.status = OrderStatus.CONFIRMED.value
                    order.updated_at = now
                    order_confirmed = True
            payment_id, order_id = payment.id, payment.order_id

        self.cache.evict_all(PAYMENTS)
        if order_confirmed:
            self.cache.evict_all(ORDERS, ORDER_BY_ID)
        logger.info("payment_status_updated", payment_id=payment_id, old_status=current.value,
                    new_status=status.value, order_id=order_id, order_confirmed=order_confirmed)
        return True

    # ------------------------------------------------------------------ #
    # Webhook
    # ------------------------------------------------------------------ #
    def handle_webhook(self, payload, signature: str | None):
        """Verify a Stripe webhook delivery and apply it."""
        if not self.webhook_secret:
            logger.error("webhook_secret_missing")
            raise WebhookNotConfigured()

        event = self.gateway.construct_event(payload, signature, self.webhook_secret)
        logger.info("webhook_verified", event_type=_event_field(event, "type"), event_id=_event_field(event, "id"))
        self.process_event(event)
        return event

    def process_event(self, event) -> bool:
        event_type = _event_field(event, "type")
        status = WEBHOOK_EVENT_STATUS.get(event_type)
        if status is None:
            logger.info("webhook_event_unhandled", event_type=event_type)
            return False

        intent_id = _event_field(event, "data", "object", "id")
        if not intent_id:
            logger.warning("webhook_event_without_intent", event_type=event_type)
            return False

        try:
            return self.apply_provider_status(intent_id, status)
        except PaymentNotFound:
            # intent created outside this app or the row is gone
            logger.warning("webhook_payment_not_found", intent_id=intent_id, event_type=event_type)
            return False

    # ------------------------------------------------------------------ #
    # Reconciliation helpers
    # ------------------------------------------------------------------ #
    def synchronize_payment_status(self, intent_id: str) -> PaymentStatus:
        """Poll Stripe for ``intent_id`` and apply the mapped status if it differs."""
        payment = Payment.query.filter_by(transaction_id=intent_id).first()
        if payment is None:
            raise PaymentNotFound(f"Payment not found for transaction: {intent_id}")
        local_status = payment.status_enum

        intent = self.gateway.retrieve_payment_intent(intent_id)
        new_status = map_provider_status(intent.status)
        if new_status is not local_status:
            logger.info("payment_status_drift", payment_id=payment.id,
                        local_status=local_status.value, provider_status=intent.status)
            self.apply_provider_status(intent_id, new_status)
        return new_status

    def expire_stale_pending_payments(self, now: datetime | None = None,
                                      stale_after: timedelta = timedelta(hours=24)) -> int:
        """Fail every pending payment created strictly before ``now - stale_after``."""
        now = now or utcnow()
        cutoff = now - stale_after
        with unit_of_work():
            stale = (Payment.query
                     .filter(Payment.status == PaymentStatus.PENDING.value,
                             Payment.created_at < cutoff)
                     .with_for_update()
                     .all())
            for payment in stale:
                logger.info("payment_expired", payment_id=payment.id, created_at=payment.created_at.isoformat())
                payment.status = PaymentStatus.FAILED.value
                payment.updated_at = now
            expired = len(stale)

        if expired:
            self.cache.evict_all(PAYMENTS)
            logger.info("stale_payments_expired", count=expired, cutoff=cutoff.isoformat())
        return expired

    def find_oldest_pending_payments(self, updated_before: datetime, limit: int) -> list[Payment]:
        return (Payment.query
                .filter(Payment.status == PaymentStatus.PENDING.value,
                        Payment.updated_at < updated_before)
                .order_by(Payment.created_at.asc(), Payment.id.asc())
                .limit(limit)
                .all())
