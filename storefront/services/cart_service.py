from ..cache import CARTS, ViewCache
from ..errors import CartItemNotFound, InvalidInput
from ..extensions import db
from ..model import Cart, CartItem, User
from ..utils.clock import utcnow
from ..utils.tx import unit_of_work
from .auth_service import find_user
from .product_service import ProductService


def _quantity(value) -> int:
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise InvalidInput("quantity must be an integer")
    if qty < 1:
        raise InvalidInput("quantity must be >= 1")
    return qty


def get_or_create_cart(user: User) -> Cart:
    cart = Cart.query.filter_by(user_id=user.id).first()
    if not cart:
        cart = Cart(user_id=user.id)
        db.session.add(cart)
        db.session.flush()
    return cart


class CartService:
    def __init__(self, cache: ViewCache, products: ProductService):
        self.cache = cache
        self.products = products

    def get_cart(self, email: str) -> dict:
        cached = self.cache.get(CARTS, email)
        if cached is not None:
            return cached
        with unit_of_work():
            cart = get_or_create_cart(find_user(email))
            view = cart.as_api()
        self.cache.put(CARTS, email, view)
        return view

    def add_item(self, email: str, product_id: int, quantity=1) -> dict:
        qty = _quantity(quantity)
        with unit_of_work():
            cart = get_or_create_cart(find_user(email))
            product = self.products.load_product(product_id)

            # Upsert item
            item = next((i for i in cart.items if i.product_id == product.id), None)
            if item:
                item.quantity += qty
            else:
                cart.items.append(CartItem(product_id=product.id, product=product, quantity=qty))
            cart.updated_at = utcnow()
            db.session.flush()
            view = cart.as_api()
        self.cache.evict(CARTS, email)
        return view

    def update_item(self, email: str, item_id: int, quantity) -> dict:
        qty = _quantity(quantity)
        with unit_of_work():
            cart = get_or_create_cart(find_user(email))
            item = next((i for i in cart.items if i.id == item_id), None)
            if not item:
                raise CartItemNotFound(f"Cart item with id {item_id} not found")
            item.quantity = qty
            cart.updated_at = utcnow()
            view = cart.as_api()
        self.cache.evict(CARTS, email)
        return view

    def remove_item(self, email: str, item_id: int) -> dict:
        with unit_of_work():
            cart = get_or_create_cart(find_user(email))
            item = next((i for i in cart.items if i.id == item_id), None)
            if not item:
                raise CartItemNotFound(f"Cart item with id {item_id} not found")
            cart.items.remove(item)
            cart.updated_at = utcnow()
            db.session.flush()
            view = cart.as_api()
        self.cache.evict(CARTS, email)
        return view

    def clear_cart(self, email: str) -> dict:
        with unit_of_work():
            cart = get_or_create_cart(find_user(email))
            cart.items.clear()
            cart.updated_at = utcnow()
            db.session.flush()
            view = cart.as_api()
        self.cache.evict(CARTS, email)
        return view
