from enum import Enum

from ..extensions import db
from ..utils.clock import utcnow
from ..utils.money import to_float


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    status = db.Column(db.String(20), default=OrderStatus.PENDING.value, nullable=False, index=True)

    delivery_address = db.Column(db.String(500), nullable=False)

    # Money snapshot, fixed once the order exists
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)

    order_date = db.Column(db.DateTime, default=utcnow)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship("User")
    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id.asc()",
    )

    def total_items(self) -> int:
        return sum(i.quantity for i in self.items)

    def as_api(self):
        return {
            "id": self.id,
            "status": self.status,
            "order_date": self.order_date.isoformat() if self.order_date else None,
            "delivery_address": self.delivery_address,
            "total_amount": to_float(self.total_amount),
            "total_items": self.total_items(),
            "items": [i.as_api() for i in self.items],
        }

class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), index=True)
    name = db.Column(db.String(255))

    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow)

    def as_api(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": to_float(self.unit_price),
            "quantity": self.quantity,
            "line_total": to_float(self.line_total),
        }
