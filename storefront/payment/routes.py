import structlog
from flask import request

from . import bp
from ..services import get_services
from ..utils.api import err, ok
from ..utils.decorators import current_email

logger = structlog.get_logger(component="payment_routes")


def _order_id(data):
    try:
        return int(data.get("order_id"))
    except (TypeError, ValueError):
        return None


@bp.post("")
def create_payment():
    data = request.get_json(silent=True) or {}
    order_id = _order_id(data)
    if order_id is None:
        return err("order_id is required", 400)
    payment = get_services().payments.create_payment(current_email(), order_id, data.get("currency"))
    return ok("Payment created", payment, 201)


@bp.get("/<int:payment_id>")
def get_payment(payment_id: int):
    return ok("payment", get_services().payments.get_payment(current_email(), payment_id))


@bp.post("/stripe/make-payment")
def make_payment():
    data = request.get_json(silent=True) or {}
    order_id = _order_id(data)
    if order_id is None:
        return err("order_id is required", 400)
    payment = get_services().payments.make_payment(
        current_email(),
        order_id,
        data.get("amount"),
        data.get("currency"),
        data.get("description"),
    )
    return ok("Payment intent created", payment, 201)


@bp.post("/stripe/webhook")
def stripe_webhook():
    # public; authenticity comes from the Stripe-Signature header
    payload = request.get_data()
    signature = request.headers.get("Stripe-Signature")
    logger.info("webhook_received", size=len(payload))
    get_services().payments.handle_webhook(payload, signature)
    return ok("Webhook processed successfully")


@bp.get("/stripe/callback")
def stripe_callback():
    """Landing point for Stripe's redirect after the payment page."""
    payment_intent = request.args.get("payment_intent") or ""
    redirect_status = request.args.get("redirect_status") or "unknown"
    logger.info("payment_callback_received", payment_intent=payment_intent, redirect_status=redirect_status)
    return ok("Payment callback received", {
        "status": redirect_status,
        "payment_intent": payment_intent,
    })


@bp.get("/stripe/config")
def stripe_config():
    return ok("stripe config", {"publishable_key": get_services().payments.publishable_key()})
