from __future__ import annotations

from ..extensions import db
from coworkpos.money import from_cents
from coworkpos.time_utils import to_utc_z

EXPENSE_CATEGORIES = ("rent", "wifi", "electricity", "water", "supplies", "maintenance", "other")


class Expense(db.Model):
    """
    Money going out. Recorded by admins, or automatically by stock and
    ingredient restocks when a purchase price is known (category "supplies").
    """
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_category_date", "category", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(32), nullable=False)
    description = db.Column(db.Text, nullable=True)
    payment_method = db.Column(db.String(32), nullable=False, default="cash")

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Expense id={self.id} category={self.category!r} amount_cents={self.amount_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "amount": from_cents(self.amount_cents),
            "category": self.category,
            "description": self.description,
            "paymentMethod": self.payment_method,
            "createdById": self.created_by_id,
        }
