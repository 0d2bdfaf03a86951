from flask import request

from . import bp
from ..services import get_services
from ..utils.api import ok
from ..utils.decorators import role_required


@bp.get("")
def list_products():
    """
    Query params:
      - q=keyword        (name / description contains)
      - category=name
    """
    products = get_services().products
    keyword = request.args.get("q")
    category = request.args.get("category")
    if keyword:
        return ok("products", products.search_products(keyword))
    if category:
        return ok("products", products.products_by_category(category))
    return ok("products", products.list_products())


@bp.get("/<int:product_id>")
def get_product(product_id: int):
    return ok("product", get_services().products.get_product(product_id))


@bp.post("")
@role_required("admin", message="Only admin can manage products")
def create_product():
    data = request.get_json(silent=True) or {}
    product = get_services().products.create_product(
        name=data.get("name"),
        description=data.get("description"),
        category=data.get("category"),
        price=data.get("price"),
        image_url=data.get("image_url"),
    )
    return ok("Product created", product, 201)


@bp.put("/<int:product_id>")
@role_required("admin", message="Only admin can manage products")
def replace_product(product_id: int):
    data = request.get_json(silent=True) or {}
    return ok("Product updated", get_services().products.update_product(product_id, data))


@bp.patch("/<int:product_id>")
@role_required("admin", message="Only admin can manage products")
def patch_product(product_id: int):
    data = request.get_json(silent=True) or {}
    return ok("Product updated", get_services().products.update_product(product_id, data, partial=True))
