# Overview: Staff account management with super-admin protections.

"""
User administration rules:

- usernames are unique
- only a super_admin may create a super_admin, promote someone to
  super_admin, or edit/delete an existing super_admin
- nobody can delete their own account
- deleting a user revokes their sessions; a user referenced by stock or
  ingredient movements is deactivated instead so the audit trail keeps
  pointing at a real account
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import (
    Expense,
    IngredientMovement,
    RoomRental,
    StockMovement,
    Transaction,
    User,
)
from ..permissions import Role, parse_role
from ..validation import ConflictError, ForbiddenError, NotFoundError, ValidationError
from . import session_service
from .auth_service import hash_password
from .concurrency import run_with_retry

USER_MUTABLE_FIELDS = {"username", "role", "full_name", "email", "is_active"}


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("Utilisateur non trouvé")
    return user


def _require_super_admin(actor: User, message: str) -> None:
    if parse_role(actor.role) != Role.SUPER_ADMIN:
        raise ForbiddenError(message)


def _check_role(value) -> str:
    try:
        return parse_role(value).value
    except ValueError as exc:
        raise ValidationError(str(exc))


def _ensure_username_free(username: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(User.id).filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("Ce nom d'utilisateur existe déjà")


def create_user(patch: dict, password: str, actor: User | None) -> User:
    """
    actor=None is reserved for CLI bootstrap (no role checks).
    """
    role = _check_role(patch.get("role") or Role.CASHIER.value)
    if actor is not None and role == Role.SUPER_ADMIN.value:
        _require_super_admin(actor, "Seul un super administrateur peut créer un super administrateur")

    def _op():
        _ensure_username_free(patch["username"])
        user = User(
            username=patch["username"],
            password_hash=hash_password(password),
            role=role,
            full_name=patch.get("full_name"),
            email=patch.get("email"),
            is_active=patch.get("is_active", True) is not False,
        )
        db.session.add(user)
        db.session.commit()
        return user

    user = run_with_retry(_op)
    current_app.logger.info("Created user %s with role %s", user.username, user.role)
    return user


def update_user(user_id: int, patch: dict, password: str | None, actor: User) -> User:
    def _op():
        user = get_user(user_id)

        if user.role == Role.SUPER_ADMIN.value:
            _require_super_admin(actor, "Seul un super administrateur peut modifier un super administrateur")
        if "role" in patch:
            patch["role"] = _check_role(patch["role"])
            if patch["role"] == Role.SUPER_ADMIN.value:
                _require_super_admin(actor, "Seul un super administrateur peut attribuer ce rôle")

        if "username" in patch:
            _ensure_username_free(patch["username"], exclude_id=user.id)

        for key, value in patch.items():
            if key in USER_MUTABLE_FIELDS:
                setattr(user, key, value)
        if password is not None:
            user.password_hash = hash_password(password)

        if not user.is_active:
            session_service.revoke_all_user_sessions(user.id, "User account deactivated", commit=False)

        db.session.commit()
        return user

    return run_with_retry(_op)


def _has_movements(user_id: int) -> bool:
    for model in (StockMovement, IngredientMovement):
        if db.session.query(model.id).filter(model.performed_by_id == user_id).first() is not None:
            return True
    return False


def delete_user(user_id: int, actor: User) -> dict:
    """
    Returns {"deleted": bool, "deactivated": bool}.
    """
    if user_id == actor.id:
        raise ValidationError("Vous ne pouvez pas supprimer votre propre compte")

    def _op():
        user = get_user(user_id)
        if user.role == Role.SUPER_ADMIN.value:
            _require_super_admin(actor, "Seul un super administrateur peut supprimer un super administrateur")

        session_service.revoke_all_user_sessions(user.id, "User deleted", commit=False)

        if _has_movements(user.id):
            user.is_active = False
            db.session.commit()
            return {"deleted": False, "deactivated": True}

        # Attribution columns are nullable; keep the records, drop the link
        for model in (Transaction, Expense, RoomRental):
            db.session.query(model).filter(model.created_by_id == user.id).update(
                {model.created_by_id: None}, synchronize_session=False
            )
        db.session.delete(user)
        db.session.commit()
        return {"deleted": True, "deactivated": False}

    result = run_with_retry(_op)
    current_app.logger.info("Removed user %s (%s)", user_id, "deleted" if result["deleted"] else "deactivated")
    return result
