# ------ storefront/model/__init__.py ------

from .user import User, RefreshToken, PasswordResetToken
from .product import Product, Category
from .cart import Cart, CartItem
from .order import Order, OrderItem, OrderStatus
from .payment import Payment, PaymentStatus, PaymentMethod

__all__ = [
    "User",
    "RefreshToken",
    "PasswordResetToken",
    "Product",
    "Category",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "PaymentStatus",
    "PaymentMethod",
]
