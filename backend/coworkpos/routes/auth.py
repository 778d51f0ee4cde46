# backend/coworkpos/routes/auth.py
"""
Authentication API routes

- POST /api/login: checks credentials, opens a session, returns the token
  and also stores it in the signed session cookie
- POST /api/logout: revokes the current session
- GET /api/user: the authenticated user
"""

from flask import Blueprint, request, jsonify, session, g

from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth
from ..validation import ValidationError
from .params import json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.post("/login")
def login_route():
    try:
        data = json_body()
    except ValidationError as e:
        return jsonify({"message": str(e)}), 400
    username = data.get("username")
    password = data.get("password")

    if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
        return jsonify({"message": "Nom d'utilisateur et mot de passe requis"}), 400

    user = auth_service.authenticate(username.strip(), password)
    if not user:
        return jsonify({"message": "Nom d'utilisateur ou mot de passe incorrect"}), 401

    user_session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    session["token"] = token

    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": user_session.to_dict(),
        "message": "Connexion réussie",
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.auth_token, reason="User logout")
    session.pop("token", None)
    return jsonify({"message": "Déconnexion réussie"}), 200


@auth_bp.get("/user")
@require_auth
def current_user_route():
    return jsonify(g.current_user.to_dict()), 200
