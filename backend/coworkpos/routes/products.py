# backend/coworkpos/routes/products.py
"""
Café catalogue routes.

Reads are open to any signed-in user (the cashier screen builds its menu from
them); writes require admin.
"""
from flask import Blueprint, request, jsonify

from ..services import products_service
from ..models import Product, PRODUCT_CATEGORIES
from ..permissions import Role
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_role
from .params import json_body

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "price", "category", "is_active"},
    required_on_create={"name", "price", "category"},
    money_fields={"price": "price_cents"},
    choices={"category": PRODUCT_CATEGORIES},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - category: beverage | food | other (optional)
    - active: true | false (optional)
    """
    category = request.args.get("category")
    if category is not None and category not in PRODUCT_CATEGORIES:
        return {"message": f"Catégorie invalide: {category}"}, 400

    active_raw = request.args.get("active")
    active = None if active_raw is None else active_raw.lower() == "true"

    products = products_service.list_products(category=category, active=active)
    return jsonify([p.to_dict() for p in products])


@products_bp.get("/<int:product_id>")
@require_auth
def get_product(product_id: int):
    try:
        return products_service.get_product(product_id).to_dict()
    except NotFoundError as e:
        return {"message": str(e)}, 404


@products_bp.post("")
@require_auth
@require_role(Role.ADMIN)
def create_product_route():
    try:
        patch = validate_payload(model=Product, payload=json_body(), policy=PRODUCT_POLICY, partial=False)
    except ValidationError as e:
        return {"message": str(e)}, 400

    created = products_service.create_product(patch)
    return created.to_dict(), 201


@products_bp.patch("/<int:product_id>")
@require_auth
@require_role(Role.ADMIN)
def update_product_route(product_id: int):
    try:
        patch = validate_payload(model=Product, payload=json_body(), policy=PRODUCT_POLICY, partial=True)
    except ValidationError as e:
        return {"message": str(e)}, 400

    try:
        updated = products_service.update_product(product_id, patch)
    except NotFoundError as e:
        return {"message": str(e)}, 404

    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(Role.ADMIN)
def delete_product_route(product_id: int):
    """Hard delete; products linked to stock or a recipe answer 409 (deactivate them instead)."""
    try:
        products_service.delete_product(product_id)
    except NotFoundError as e:
        return {"message": str(e)}, 404
    except ConflictError as e:
        return {"message": str(e)}, 409

    return {"message": "Produit supprimé avec succès"}, 200
