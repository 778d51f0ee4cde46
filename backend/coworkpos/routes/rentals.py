# backend/coworkpos/routes/rentals.py
"""
Room rental routes. Any signed-in user books rooms; changing or cancelling a
booking requires admin.
"""
from flask import Blueprint, g, jsonify

from ..services import rental_service
from ..models import RoomRental, ROOM_TYPES, PAYMENT_METHODS
from ..permissions import Role
from ..validation import ModelValidationPolicy, validate_payload, ValidationError, NotFoundError
from ..decorators import require_auth, require_role
from .params import json_body, day_arg

RENTAL_POLICY = ModelValidationPolicy(
    writable_fields={
        "room_type", "price", "client_name", "client_contact", "date",
        "start_time", "end_time", "notes", "payment_method",
    },
    required_on_create={"room_type", "price", "client_name", "start_time", "end_time", "payment_method"},
    money_fields={"price": "price_cents"},
    choices={"room_type": ROOM_TYPES, "payment_method": PAYMENT_METHODS},
)

rentals_bp = Blueprint("rentals", __name__, url_prefix="/api/room-rentals")


@rentals_bp.get("")
@require_auth
def list_rentals():
    """Optional filter: startDate & endDate (inclusive days)."""
    try:
        start_day = day_arg("startDate")
        end_day = day_arg("endDate")
    except ValidationError as e:
        return {"message": str(e)}, 400
    return jsonify([r.to_dict() for r in rental_service.list_rentals(start_day, end_day)])


@rentals_bp.get("/<int:rental_id>")
@require_auth
def get_rental(rental_id: int):
    try:
        return rental_service.get_rental(rental_id).to_dict()
    except NotFoundError as e:
        return {"message": str(e)}, 404


@rentals_bp.post("")
@require_auth
def create_rental_route():
    try:
        patch = validate_payload(model=RoomRental, payload=json_body(), policy=RENTAL_POLICY, partial=False)
        rental = rental_service.create_rental(patch, user_id=g.current_user.id)
    except ValidationError as e:
        return {"message": str(e)}, 400
    return rental.to_dict(), 201


@rentals_bp.patch("/<int:rental_id>")
@require_auth
@require_role(Role.ADMIN)
def update_rental_route(rental_id: int):
    try:
        patch = validate_payload(model=RoomRental, payload=json_body(), policy=RENTAL_POLICY, partial=True)
        rental = rental_service.update_rental(rental_id, patch)
    except ValidationError as e:
        return {"message": str(e)}, 400
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return rental.to_dict(), 200


@rentals_bp.delete("/<int:rental_id>")
@require_auth
@require_role(Role.ADMIN)
def delete_rental_route(rental_id: int):
    try:
        rental_service.delete_rental(rental_id)
    except NotFoundError as e:
        return {"message": str(e)}, 404
    return {"message": "Location supprimée avec succès"}, 200
