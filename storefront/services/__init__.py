from dataclasses import dataclass

from flask import current_app

from ..cache import ViewCache
from ..scheduler import PaymentSyncConfig, PaymentSyncScheduler
from .auth_service import AuthService
from .cart_service import CartService
from .order_service import OrderService
from .payment_service import PaymentService
from .product_service import ProductService, make_product_service
from .stripe_gateway import StripeGateway

EXTENSION_KEY = "storefront"


@dataclass
class Services:
    cache: ViewCache
    gateway: StripeGateway
    auth: AuthService
    products: ProductService
    carts: CartService
    orders: OrderService
    payments: PaymentService
    scheduler: PaymentSyncScheduler


def init_services(app, gateway: StripeGateway | None = None) -> Services:
    """Wire the service layer for ``app`` and park it in ``app.extensions``."""
    cfg = app.config
    cache = ViewCache()
    gateway = gateway or StripeGateway(
        cfg.get("STRIPE_SECRET_KEY", ""),
        cfg.get("STRIPE_PUBLISHABLE_KEY", ""),
        cfg.get("STRIPE_DEFAULT_CURRENCY", "usd"),
    )
    products = make_product_service(cfg.get("PRODUCT_SOURCE", "db"), cache)
    payments = PaymentService(
        gateway,
        cache,
        webhook_secret=cfg.get("STRIPE_WEBHOOK_SECRET"),
        default_currency=cfg.get("STRIPE_DEFAULT_CURRENCY", "usd"),
    )
    services = Services(
        cache=cache,
        gateway=gateway,
        auth=AuthService(cfg.get("REFRESH_TOKEN_TTL_DAYS", 7), cfg.get("PASSWORD_RESET_TTL_MINUTES", 30)),
        products=products,
        carts=CartService(cache, products),
        orders=OrderService(cache),
        payments=payments,
        scheduler=PaymentSyncScheduler(payments, PaymentSyncConfig.from_mapping(cfg)),
    )
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]
