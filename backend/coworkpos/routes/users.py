# backend/coworkpos/routes/users.py
"""
User administration (admin and above).

Super-admin accounts can only be created, edited or deleted by a super_admin;
see user_service for the full rule set.
"""
from flask import Blueprint, g, jsonify

from ..services import user_service
from ..services.auth_service import PasswordValidationError
from ..models import User
from ..permissions import Role, ROLE_VALUES
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
    NotFoundError,
    ForbiddenError,
)
from ..decorators import require_auth, require_role
from .params import json_body

USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "role", "full_name", "email", "is_active"},
    required_on_create={"username", "role"},
    choices={"role": ROLE_VALUES},
)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _split_password(payload: dict, *, required: bool) -> tuple[dict, str | None]:
    payload = dict(payload)
    password = payload.pop("password", None)
    if password is None and required:
        raise ValidationError("Champs obligatoires manquants: password")
    if password is not None and not isinstance(password, str):
        raise ValidationError("password doit être une chaîne de caractères")
    return payload, password


@users_bp.get("")
@require_auth
@require_role(Role.ADMIN)
def list_users():
    return jsonify([u.to_dict() for u in user_service.list_users()])


@users_bp.get("/<int:user_id>")
@require_auth
@require_role(Role.ADMIN)
def get_user(user_id: int):
    try:
        return user_service.get_user(user_id).to_dict()
    except NotFoundError as e:
        return {"message": str(e)}, 404


@users_bp.post("")
@require_auth
@require_role(Role.ADMIN)
def create_user_route():
    try:
        payload, password = _split_password(json_body(), required=True)
        patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)
    except ValidationError as e:
        return {"message": str(e)}, 400

    try:
        user = user_service.create_user(patch, password, actor=g.current_user)
    except (ValidationError, PasswordValidationError) as e:
        return {"message": str(e)}, 400
    except ForbiddenError as e:
        return {"message": str(e)}, 403
    except ConflictError as e:
        return {"message": str(e)}, 409

    return user.to_dict(), 201


@users_bp.patch("/<int:user_id>")
@require_auth
@require_role(Role.ADMIN)
def update_user_route(user_id: int):
    try:
        payload, password = _split_password(json_body(), required=False)
        patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)
    except ValidationError as e:
        return {"message": str(e)}, 400

    try:
        user = user_service.update_user(user_id, patch, password, actor=g.current_user)
    except (ValidationError, PasswordValidationError) as e:
        return {"message": str(e)}, 400
    except ForbiddenError as e:
        return {"message": str(e)}, 403
    except NotFoundError as e:
        return {"message": str(e)}, 404
    except ConflictError as e:
        return {"message": str(e)}, 409

    return user.to_dict(), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_role(Role.ADMIN)
def delete_user_route(user_id: int):
    """A user with stock history is deactivated instead of deleted."""
    try:
        result = user_service.delete_user(user_id, actor=g.current_user)
    except ValidationError as e:
        return {"message": str(e)}, 400
    except ForbiddenError as e:
        return {"message": str(e)}, 403
    except NotFoundError as e:
        return {"message": str(e)}, 404

    if result["deactivated"]:
        message = "Utilisateur désactivé (historique de stock conservé)"
    else:
        message = "Utilisateur supprimé avec succès"
    return {"message": message, **result}, 200
