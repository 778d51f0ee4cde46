from __future__ import annotations

from ..extensions import db
from coworkpos.money import from_cents
from coworkpos.time_utils import to_utc_z, to_iso_date

TRANSACTION_TYPES = ("entry", "subscription", "cafe")
PAYMENT_METHODS = ("cash", "card", "mobile_transfer")

# Outcome of the stock deduction a café sale triggers
STOCK_STATUS_NOT_APPLICABLE = "not_applicable"
STOCK_STATUS_SYNCED = "synced"
STOCK_STATUS_NEEDS_RECONCILIATION = "needs_reconciliation"


class Transaction(db.Model):
    """
    A recorded sale: entry fee, subscription, or café order.

    Café line items are stored inline as JSON:
        [{"id": product_id, "name": str, "price_cents": int, "quantity": int}]
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_type_date", "type", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False)

    amount_cents = db.Column(db.Integer, nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)

    client_name = db.Column(db.String(255), nullable=True)
    client_email = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    items = db.Column(db.JSON, nullable=True)
    subscription_end_date = db.Column(db.DateTime(timezone=True), nullable=True)

    stock_status = db.Column(db.String(32), nullable=False, default=STOCK_STATUS_NOT_APPLICABLE, index=True)
    stock_note = db.Column(db.Text, nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} type={self.type!r} amount_cents={self.amount_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_utc_z(self.date),
            "type": self.type,
            "amount": from_cents(self.amount_cents),
            "paymentMethod": self.payment_method,
            "clientName": self.client_name,
            "clientEmail": self.client_email,
            "notes": self.notes,
            "items": [
                {
                    "id": item["id"],
                    "name": item["name"],
                    "price": from_cents(item["price_cents"]),
                    "quantity": item["quantity"],
                }
                for item in (self.items or [])
            ] if self.items is not None else None,
            "subscriptionEndDate": to_utc_z(self.subscription_end_date),
            "stockStatus": self.stock_status,
            "stockNote": self.stock_note,
            "createdById": self.created_by_id,
        }


class DailyStats(db.Model):
    """
    Per-day revenue/count aggregate.

    INVARIANT: for a given date, each field equals the sum/count of that day's
    Transactions of the matching type. Maintained incrementally by
    stats_service.apply_transaction / reverse_transaction and re-derivable
    with stats_service.close_day.
    """
    __tablename__ = "daily_stats"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, unique=True, index=True)

    total_revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    entries_revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    entries_count = db.Column(db.Integer, nullable=False, default=0)
    subscriptions_revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    subscriptions_count = db.Column(db.Integer, nullable=False, default=0)
    cafe_revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    cafe_orders_count = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<DailyStats date={self.date} total_revenue_cents={self.total_revenue_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": to_iso_date(self.date),
            "totalRevenue": from_cents(self.total_revenue_cents),
            "entriesRevenue": from_cents(self.entries_revenue_cents),
            "entriesCount": self.entries_count,
            "subscriptionsRevenue": from_cents(self.subscriptions_revenue_cents),
            "subscriptionsCount": self.subscriptions_count,
            "cafeRevenue": from_cents(self.cafe_revenue_cents),
            "cafeOrdersCount": self.cafe_orders_count,
        }
