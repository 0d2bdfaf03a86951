# storefront/errors.py
import structlog
from flask import jsonify
from werkzeug.exceptions import HTTPException

from .utils.api import api_error

logger = structlog.get_logger(component="errors")


class StoreError(Exception):
    """Base for every error a service raises towards the HTTP boundary."""

    status_code = 500
    default_message = "internal error"

    def __init__(self, message=None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


# ---- 404 -------------------------------------------------------------------
class NotFound(StoreError):
    status_code = 404
    default_message = "not found"

class UserNotFound(NotFound):
    default_message = "user not found"

class OrderNotFound(NotFound):
    default_message = "order not found"

class PaymentNotFound(NotFound):
    default_message = "payment not found"

class ProductNotFound(NotFound):
    default_message = "product not found"

class CartItemNotFound(NotFound):
    default_message = "cart item not found"


# ---- 400 -------------------------------------------------------------------
class InvalidInput(StoreError):
    status_code = 400
    default_message = "invalid input"

class EmptyCart(InvalidInput):
    default_message = "Cart is empty"

class InvalidAmount(InvalidInput):
    default_message = "invalid payment amount"

class InvalidSignature(InvalidInput):
    default_message = "Invalid signature"

class InvalidResetToken(InvalidInput):
    default_message = "Password reset token is expired or has already been used"


# ---- 409 -------------------------------------------------------------------
class Conflict(StoreError):
    status_code = 409
    default_message = "conflict"

class AlreadyProcessed(Conflict):
    default_message = "Payment already processed for this order"

class UserAlreadyExists(Conflict):
    default_message = "Email already registered"


# ---- 401 / 403 -------------------------------------------------------------
class Unauthenticated(StoreError):
    status_code = 401
    default_message = "Unauthorized"

class InvalidCredentials(Unauthenticated):
    default_message = "Invalid email or password"

class Forbidden(StoreError):
    status_code = 403
    default_message = "Forbidden"


# ---- 5xx -------------------------------------------------------------------
class ProviderFailure(StoreError):
    """The payment provider failed or answered with something unusable."""
    status_code = 502
    default_message = "payment provider failure"

class WebhookNotConfigured(StoreError):
    status_code = 500
    default_message = "Webhook secret not configured"


def register_error_handlers(app):
    @app.errorhandler(StoreError)
    def handle_store_error(e):
        r = jsonify(api_error(e.message, e.context or None))
        r.status_code = e.status_code
        return r

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        r = jsonify(api_error(e.description or e.name))
        r.status_code = e.code or 500
        return r

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        logger.exception("unhandled_error", error=str(e))
        r = jsonify(api_error("internal error"))
        r.status_code = 500
        return r
