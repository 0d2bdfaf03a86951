"""Thin wrapper around the Stripe SDK.

Everything the rest of the application needs from Stripe goes through
``StripeGateway`` so the services never touch ``stripe`` directly and tests
can substitute a fake with the same four methods.
"""
from dataclasses import dataclass

import stripe
import structlog

from ..errors import InvalidSignature, ProviderFailure
from ..utils.money import to_minor_units


@dataclass(frozen=True)
class PaymentIntentResult:
    intent_id: str
    client_secret: str | None
    status: str


def _stripe_message(e: Exception) -> str:
    return getattr(e, "user_message", None) or str(e)


class StripeGateway:
    def __init__(self, secret_key: str, publishable_key: str = "", default_currency: str = "usd"):
        self.secret_key = secret_key
        self.publishable_key = publishable_key
        self.default_currency = default_currency
        self._logger = structlog.get_logger(component="stripe_gateway")

    def create_or_retrieve_customer(self, email: str, name: str | None = None) -> str:
        """Customer id for ``email``; searches first so repeated calls reuse one customer."""
        try:
            self._logger.info("stripe_customer_lookup", email=email)
            customers = stripe.Customer.list(email=email, limit=1, api_key=self.secret_key)
            if customers.data:
                customer_id = customers.data[0].id
                self._logger.info("stripe_customer_found", customer_id=customer_id)
                return customer_id

            customer = stripe.Customer.create(email=email, name=name or email, api_key=self.secret_key)
            self._logger.info("stripe_customer_created", customer_id=customer.id)
            return customer.id
        except stripe.StripeError as e:
            self._logger.error("stripe_customer_failed", email=email, error=_stripe_message(e))
            raise ProviderFailure(f"Failed to create/retrieve customer: {_stripe_message(e)}") from e

    def create_payment_intent(self, order_id, amount, customer_id: str,
                              currency: str | None = None, description: str | None = None) -> PaymentIntentResult:
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(amount),
                currency=(currency or self.default_currency).lower(),
                customer=customer_id,
                description=description or f"Payment for order #{order_id}",
                metadata={"orderId": str(order_id)},
                automatic_payment_methods={"enabled": True},
                api_key=self.secret_key,
            )
        except stripe.StripeError as e:
            self._logger.error("stripe_intent_create_failed", order_id=order_id, error=_stripe_message(e))
            raise ProviderFailure(f"Failed to create payment intent: {_stripe_message(e)}") from e

        if not getattr(intent, "id", None):
            raise ProviderFailure("Stripe returned a payment intent without an id")
        self._logger.info("stripe_intent_created", order_id=order_id, intent_id=intent.id)
        return PaymentIntentResult(intent.id, intent.client_secret, intent.status)

    def retrieve_payment_intent(self, intent_id: str) -> PaymentIntentResult:
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.secret_key)
        except stripe.StripeError as e:
            self._logger.error("stripe_intent_retrieve_failed", intent_id=intent_id, error=_stripe_message(e))
            raise ProviderFailure(f"Failed to retrieve payment intent: {_stripe_message(e)}") from e
        if not getattr(intent, "status", None):
            raise ProviderFailure(f"Payment intent {intent_id} has no status")
        return PaymentIntentResult(intent.id, None, intent.status)

    def construct_event(self, payload, signature: str | None, secret: str):
        """Verify the ``Stripe-Signature`` header and parse the event.

        Raises InvalidSignature for a bad signature or a payload that is not
        a Stripe event.
        """
        try:
            return stripe.Webhook.construct_event(payload, signature or "", secret)
        except stripe.SignatureVerificationError as e:
            self._logger.warning("webhook_signature_invalid", error=str(e))
            raise InvalidSignature("Invalid signature") from e
        except ValueError as e:
            self._logger.warning("webhook_payload_invalid", error=str(e))
            raise InvalidSignature("Error processing webhook") from e
