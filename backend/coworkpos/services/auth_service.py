# Overview: Password hashing and credential checks.

"""
Authentication Service

Every sale and stock movement is attributed to a user, so logins are
personal. Passwords are hashed with bcrypt; session tokens
are handled separately in session_service.py.
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from coworkpos.time_utils import utcnow

MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(ValueError):
    """Raised when a password doesn't meet the minimum requirements."""


def validate_password_strength(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Le mot de passe doit contenir au moins {MIN_PASSWORD_LENGTH} caractères"
        )


def hash_password(password: str) -> str:
    """Validate, then hash with bcrypt (BCRYPT_ROUNDS, 12 by default)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe check; a malformed stored hash never matches."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def authenticate(username: str, password: str) -> User | None:
    """
    Return the active user matching the credentials, else None.

    Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None
