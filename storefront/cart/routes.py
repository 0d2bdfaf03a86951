from flask import request

from . import bp
from ..services import get_services
from ..utils.api import err, ok
from ..utils.decorators import current_email


@bp.get("")
def get_cart():
    return ok("cart", get_services().carts.get_cart(current_email()))


@bp.post("/items")
def add_item():
    data = request.get_json(silent=True) or {}
    try:
        product_id = int(data.get("product_id"))
    except (TypeError, ValueError):
        return err("product_id is required", 400)
    cart = get_services().carts.add_item(current_email(), product_id, data.get("quantity", 1))
    return ok("Item added", cart, 201)


@bp.patch("/items/<int:item_id>")
def update_item(item_id: int):
    data = request.get_json(silent=True) or {}
    cart = get_services().carts.update_item(current_email(), item_id, data.get("quantity"))
    return ok("Item updated", cart)


@bp.delete("/items/<int:item_id>")
def remove_item(item_id: int):
    return ok("Item removed", get_services().carts.remove_item(current_email(), item_id))


@bp.delete("")
def clear_cart():
    return ok("Cart cleared", get_services().carts.clear_cart(current_email()))
