# registrar/utils/auth_helpers.py
import hmac
from functools import wraps

from flask import current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from registrar import db
from registrar.models.user import User


def get_current_user():
    """User for the JWT of the current request, or None."""
    try:
        user_id = int(get_jwt_identity())
    except (ValueError, TypeError):
        return None
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


def require_admin(func):
    """Use below @jwt_required(): only active Admin users get through."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        user = get_current_user()
        if not user:
            return jsonify({"message": "User not found"}), 404
        if not user.is_admin:
            return jsonify({"message": "Access denied. Admin role required."}), 403
        return func(*args, **kwargs)

    return wrapper


def _bearer_token():
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def api_key_matches(token):
    expected = current_app.config.get("REMINDER_API_KEY")
    if not expected or not token:
        return False
    return hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))


def require_api_key_or_admin(func):
    """
    Accept either the scheduler's shared key (``Authorization: Bearer <key>``)
    or the JWT of an active admin.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        if api_key_matches(_bearer_token()):
            return func(*args, **kwargs)

        try:
            verify_jwt_in_request()
        except (JWTExtendedException, PyJWTError):
            return jsonify({"message": "Unauthorized"}), 401

        user = get_current_user()
        if user is None or not user.is_admin:
            return jsonify({"message": "Access denied. Admin role required."}), 403
        return func(*args, **kwargs)

    return wrapper
