# storefront/services/order_service.py
from decimal import Decimal

import structlog

from ..cache import CARTS, ORDER_BY_ID, ORDERS, ViewCache, cache_key
from ..errors import EmptyCart, InvalidInput, OrderNotFound
from ..extensions import db
from ..model import Cart, Order, OrderItem, OrderStatus
from ..utils.clock import utcnow
from ..utils.money import D, round_money
from ..utils.tx import unit_of_work
from .auth_service import find_user

logger = structlog.get_logger(component="order_service")

MAX_PER_PAGE = 100


def parse_order_status(value) -> OrderStatus:
    try:
        return OrderStatus(str(value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise InvalidInput(f"status must be one of: {allowed}")


class OrderService:
    def __init__(self, cache: ViewCache):
        self.cache = cache

    def _evict_order_views(self):
        self.cache.evict_all(ORDERS, ORDER_BY_ID)

    def create_order(self, email: str, delivery_address: str) -> dict:
        """Turn the user's cart into a pending order and empty the cart.

        Prices are taken from the products as they are now, not from
        whatever the cart showed earlier. The order, its lines and the cart
        clearing are committed together; on EmptyCart nothing is written.
        """
        address = (delivery_address or "").strip()
        if not address:
            raise InvalidInput("delivery address is required")

        logger.info("order_create_started", email=email)
        user = find_user(email)

        with unit_of_work():
            cart = Cart.query.filter_by(user_id=user.id).first()
            if cart is None or not cart.items:
                logger.warning("order_create_empty_cart", email=email)
                raise EmptyCart()

            now = utcnow()
            order = Order(
                user_id=user.id,
                status=OrderStatus.PENDING.value,
                delivery_address=address,
                order_date=now,
                created_at=now,
                updated_at=now,
            )

            total = Decimal("0")
            for cart_item in cart.items:
                product = cart_item.product
                unit_price = round_money(D(product.price))
                line_total = round_money(unit_price * cart_item.quantity)
                order.items.append(OrderItem(
                    product_id=product.id,
                    name=product.name,
                    unit_price=unit_price,
                    quantity=cart_item.quantity,
                    line_total=line_total,
                ))
                total += line_total
            order.total_amount = round_money(total)

            db.session.add(order)
            db.session.flush()

            # cart row is kept for the next purchase
            cart.items.clear()
            cart.updated_at = now

        self._evict_order_views()
        self.cache.evict(CARTS, email)

        logger.info("order_created", order_id=order.id, total=str(order.total_amount),
                    lines=len(order.items), email=email)
        return order.as_api()

    def _owned_order(self, email: str, order_id: int) -> Order:
        user = find_user(email)
        order = db.session.get(Order, order_id)
        if not order:
            raise OrderNotFound(f"Order with id {order_id} not found")
        if order.user_id != user.id:
            raise OrderNotFound("Order does not belong to user")
        return order

    def get_order(self, email: str, order_id: int) -> dict:
        return self.cache.get_or_load(
            ORDER_BY_ID, cache_key(email, order_id), lambda: self._owned_order(email, order_id).as_api()
        )

    def list_orders(self, email: str, status=None, page: int = 1, per_page: int = 10) -> dict:
        """Newest first. Only the unfiltered first page is served from the cache."""
        page = max(int(page or 1), 1)
        per_page = min(max(int(per_page or 10), 1), MAX_PER_PAGE)
        status = parse_order_status(status) if status else None

        cacheable = status is None and page == 1 and per_page == 10
        if cacheable:
            cached = self.cache.get(ORDERS, email)
            if cached is not None:
                return cached

        user = find_user(email)
        q = Order.query.filter(Order.user_id == user.id)
        if status is not None:
            q = q.filter(Order.status == status.value)
        paged = q.order_by(Order.order_date.desc(), Order.id.desc()).paginate(
            page=page, per_page=per_page, error_out=False
        )
        view = {
            "page": page,
            "per_page": per_page,
            "total": paged.total,
            "items": [o.as_api() for o in paged.items],
        }
        if cacheable:
            self.cache.put(ORDERS, email, view)
        return view

    def update_order_status(self, order_id: int, status) -> dict:
        new_status = parse_order_status(status)
        with unit_of_work():
            order = db.session.get(Order, order_id)
            if not order:
                logger.warning("order_status_update_missing", order_id=order_id)
                raise OrderNotFound(f"Order with id {order_id} not found")
            old_status = order.status
            order.status = new_status.value
            order.updated_at = utcnow()
        self._evict_order_views()
        logger.info("order_status_updated", order_id=order_id, old_status=old_status, new_status=new_status.value)
        return order.as_api()
