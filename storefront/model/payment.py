from enum import Enum

from ..extensions import db
from ..utils.clock import utcnow
from ..utils.money import to_float


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"

    def can_become(self, new: "PaymentStatus") -> bool:
        """Success is final; a failed attempt may still settle as success."""
        if self is PaymentStatus.SUCCESS:
            return False
        if self is PaymentStatus.FAILED:
            return new is PaymentStatus.SUCCESS
        return True


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(32), default=PaymentMethod.CREDIT_CARD.value, nullable=False)
    status = db.Column(db.String(16), default=PaymentStatus.PENDING.value, nullable=False, index=True)

    # Stripe payment intent id
    transaction_id = db.Column(db.String(255), index=True)

    payment_date = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    order = db.relationship("Order", backref=db.backref("payments", lazy="select"))

    @property
    def status_enum(self) -> PaymentStatus:
        return PaymentStatus(self.status)

    def as_api(self):
        return {
            "id": self.id,
            "order_id": self.order_id,
            "amount": to_float(self.amount),
            "method": self.method,
            "status": self.status,
            "transaction_id": self.transaction_id,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
        }
