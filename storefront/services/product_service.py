# storefront/services/product_service.py
from sqlalchemy import func, or_

from ..cache import PRODUCTS_ALL, PRODUCTS_BY_ID, ViewCache
from ..errors import InvalidInput, ProductNotFound
from ..extensions import db
from ..model import Category, Product
from ..utils.money import parse_money, round_money
from ..utils.tx import unit_of_work


class ProductService:
    """Catalog operations; one subclass per catalog backend."""

    source = None

    def get_product(self, product_id: int) -> dict:
        raise NotImplementedError

    def load_product(self, product_id: int) -> Product:
        raise NotImplementedError

    def list_products(self) -> list[dict]:
        raise NotImplementedError

    def search_products(self, keyword: str | None) -> list[dict]:
        raise NotImplementedError

    def products_by_category(self, category_name: str | None) -> list[dict]:
        raise NotImplementedError

    def create_product(self, name, description, category, price, image_url=None) -> dict:
        raise NotImplementedError

    def update_product(self, product_id: int, data: dict, partial: bool = False) -> dict:
        raise NotImplementedError


def _validated_price(value):
    price = parse_money(value)
    if price is None or price < 0:
        raise InvalidInput("price must be a non-negative number")
    return round_money(price)


class DbProductService(ProductService):
    source = "db"

    def __init__(self, cache: ViewCache):
        self.cache = cache

    def _evict(self):
        self.cache.evict_all(PRODUCTS_ALL, PRODUCTS_BY_ID)

    def _category(self, name: str | None) -> Category | None:
        name = (name or "").strip()
        if not name:
            return None
        category = Category.query.filter(func.lower(Category.name) == name.lower()).first()
        if not category:
            category = Category(name=name)
            db.session.add(category)
        return category

    def load_product(self, product_id: int) -> Product:
        product = db.session.get(Product, product_id)
        if not product:
            raise ProductNotFound(f"The product with id {product_id} is not found")
        return product

    def get_product(self, product_id: int) -> dict:
        return self.cache.get_or_load(
            PRODUCTS_BY_ID, str(product_id), lambda: self.load_product(product_id).as_api()
        )

    def list_products(self) -> list[dict]:
        return self.cache.get_or_load(
            PRODUCTS_ALL, "ALL", lambda: [p.as_api() for p in Product.query.order_by(Product.id.asc()).all()]
        )

    def search_products(self, keyword: str | None) -> list[dict]:
        keyword = (keyword or "").strip()
        if not keyword:
            return self.list_products()
        like = f"%{keyword.lower()}%"
        q = Product.query.filter(or_(
            func.lower(Product.name).like(like),
            func.lower(Product.description).like(like),
        ))
        return [p.as_api() for p in q.order_by(Product.id.asc()).all()]

    def products_by_category(self, category_name: str | None) -> list[dict]:
        category_name = (category_name or "").strip()
        if not category_name:
            return self.list_products()
        q = (Product.query.join(Category)
             .filter(func.lower(Category.name) == category_name.lower())
             .order_by(Product.id.asc()))
        return [p.as_api() for p in q.all()]

    def create_product(self, name, description, category, price, image_url=None) -> dict:
        name = (name or "").strip()
        if not name:
            raise InvalidInput("name is required")
        with unit_of_work():
            product = Product(
                name=name,
                description=description,
                price=_validated_price(price),
                image_url=image_url,
                category=self._category(category),
            )
            db.session.add(product)
        self._evict()
        return product.as_api()

    def update_product(self, product_id: int, data: dict, partial: bool = False) -> dict:
        """PUT semantics replace every field; PATCH only touches keys present in ``data``."""
        with unit_of_work():
            product = self.load_product(product_id)
            if not partial or "name" in data:
                name = (data.get("name") or "").strip()
                if not name:
                    raise InvalidInput("name is required")
                product.name = name
            if not partial or "description" in data:
                product.description = data.get("description")
            if not partial or "price" in data:
                product.price = _validated_price(data.get("price") or 0)
            if not partial or "image_url" in data:
                product.image_url = data.get("image_url")
            if not partial or "category" in data:
                product.category = self._category(data.get("category"))
        self._evict()
        return product.as_api()


PRODUCT_SOURCES = {
    DbProductService.source: DbProductService,
}

def make_product_service(source: str, cache: ViewCache) -> ProductService:
    try:
        impl = PRODUCT_SOURCES[(source or "db").strip().lower()]
    except KeyError:
        raise ValueError(f"unknown PRODUCT_SOURCE {source!r}; expected one of {sorted(PRODUCT_SOURCES)}")
    return impl(cache)
