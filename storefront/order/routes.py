from flask import request

from . import bp
from ..services import get_services
from ..utils.api import ok
from ..utils.decorators import current_email, role_required


@bp.post("")
def create_order():
    data = request.get_json(silent=True) or {}
    order = get_services().orders.create_order(current_email(), data.get("delivery_address"))
    return ok("Order created", order, 201)


@bp.get("")
def list_orders():
    """
    Query params:
      - page, per_page
      - status=pending|confirmed|shipped|delivered|cancelled
    """
    page = request.args.get("page", 1, type=int)
    per_page = request.args.get("per_page", 10, type=int)
    status = request.args.get("status")
    return ok("orders", get_services().orders.list_orders(current_email(), status, page, per_page))


@bp.get("/<int:order_id>")
def get_order(order_id: int):
    return ok("order", get_services().orders.get_order(current_email(), order_id))


@bp.patch("/<int:order_id>/status")
@role_required("admin", message="Only admin can change order status")
def update_status(order_id: int):
    data = request.get_json(silent=True) or {}
    return ok("Order status updated", get_services().orders.update_order_status(order_id, data.get("status")))
