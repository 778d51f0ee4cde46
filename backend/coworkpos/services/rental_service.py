# Overview: Room rental bookings (meeting and work rooms), persisted with ordinary CRUD.

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import RoomRental
from ..validation import NotFoundError, enforce_rules_room_rental
from coworkpos.time_utils import range_bounds
from .concurrency import run_with_retry

RENTAL_FIELDS = (
    "room_type", "price_cents", "client_name", "client_contact", "date",
    "start_time", "end_time", "notes", "payment_method",
)


def list_rentals(start_day: date | None = None, end_day: date | None = None) -> list[RoomRental]:
    query = db.session.query(RoomRental)
    if start_day is not None and end_day is not None:
        start, end = range_bounds(start_day, end_day)
        query = query.filter(RoomRental.date >= start, RoomRental.date < end)
    return query.order_by(RoomRental.date.desc(), RoomRental.start_time.desc(), RoomRental.id.desc()).all()


def get_rental(rental_id: int) -> RoomRental:
    rental = db.session.get(RoomRental, rental_id)
    if rental is None:
        raise NotFoundError("Location non trouvée")
    return rental


def create_rental(patch: dict, user_id: int | None) -> RoomRental:
    def _op():
        state = {name: patch.get(name) for name in RENTAL_FIELDS}
        if state["date"] is None:
            state["date"] = state["start_time"]
        enforce_rules_room_rental(state)
        rental = RoomRental(**state, created_by_id=user_id)
        db.session.add(rental)
        db.session.commit()
        return rental

    return run_with_retry(_op)


def update_rental(rental_id: int, patch: dict) -> RoomRental:
    def _op():
        rental = get_rental(rental_id)
        state = {name: getattr(rental, name) for name in RENTAL_FIELDS}
        state.update({k: v for k, v in patch.items() if k in RENTAL_FIELDS})
        enforce_rules_room_rental(state)
        for name, value in state.items():
            setattr(rental, name, value)
        db.session.commit()
        return rental

    return run_with_retry(_op)


def delete_rental(rental_id: int) -> None:
    def _op():
        rental = get_rental(rental_id)
        db.session.delete(rental)
        db.session.commit()

    run_with_retry(_op)
