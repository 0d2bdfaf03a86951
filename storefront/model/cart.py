# storefront/model/cart.py
from __future__ import annotations
from decimal import Decimal

from ..extensions import db
from ..utils.clock import utcnow
from ..utils.money import D, round_money

class Cart(db.Model):
    __tablename__ = "cart"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow)

    items = db.relationship(
        "CartItem",
        backref="cart",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="CartItem.id.asc()"
    )

    # --------- money helpers / totals ----------
    def total_dec(self) -> Decimal:
        return round_money(sum((i.line_total_dec() for i in self.items), Decimal("0")))

    def as_api(self):
        return {
            "id": self.id,
            "items": [i.as_api() for i in self.items],
            "total_items": sum(i.quantity for i in self.items),
            "total": float(self.total_dec()),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class CartItem(db.Model):
    __tablename__ = "cart_item"

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("cart.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product", lazy="joined")

    # ---- price helpers: always the product's current price ----
    def unit_price_dec(self) -> Decimal:
        return round_money(D(self.product.price))

    def line_total_dec(self) -> Decimal:
        return round_money(self.unit_price_dec() * Decimal(self.quantity))

    def as_api(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.product.name if self.product else None,
            "price": float(self.unit_price_dec()),
            "quantity": self.quantity,
            "line_total": float(self.line_total_dec()),
            "image_url": self.product.image_url if self.product else None,
        }
