from __future__ import annotations

from ..extensions import db
from coworkpos.money import from_cents
from coworkpos.time_utils import to_utc_z

ROOM_TYPES = ("grande", "moyenne", "petite", "salle_reunion")


class RoomRental(db.Model):
    """
    Booking of a meeting/work room for a time slot.

    Rentals are tracked on their own and do not feed DailyStats.
    """
    __tablename__ = "room_rentals"
    __table_args__ = (
        db.CheckConstraint("end_time > start_time", name="ck_room_rentals_time_order"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    room_type = db.Column(db.String(32), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)

    client_name = db.Column(db.String(255), nullable=False)
    client_contact = db.Column(db.String(255), nullable=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=False)

    notes = db.Column(db.Text, nullable=True)
    payment_method = db.Column(db.String(32), nullable=False)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "roomType": self.room_type,
            "price": from_cents(self.price_cents),
            "clientName": self.client_name,
            "clientContact": self.client_contact,
            "date": to_utc_z(self.date),
            "startTime": to_utc_z(self.start_time),
            "endTime": to_utc_z(self.end_time),
            "notes": self.notes,
            "paymentMethod": self.payment_method,
            "createdById": self.created_by_id,
        }
