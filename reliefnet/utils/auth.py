"""Shared authentication utilities.

JWT decorators used by every route module so that authentication behaves
the same everywhere.
"""

from datetime import datetime, timedelta
from functools import wraps
from flask import request, jsonify, current_app
import jwt


def _secret_key():
    """JWT secret from the Flask app config (single source of truth)."""
    return current_app.config['JWT_SECRET_KEY']


def generate_token(user):
    """Issue a signed session token for user."""
    payload = {
        'user_id': user.id,
        'role': user.role,
        'exp': datetime.utcnow() + timedelta(hours=current_app.config['JWT_EXPIRES_HOURS'])
    }
    return jwt.encode(payload, _secret_key(), algorithm='HS256')


def _decode_header_token():
    """Return the user_id from the Authorization header. Raises jwt errors."""
    auth_header = request.headers.get('Authorization')
    if not auth_header:
        raise jwt.InvalidTokenError('Token is missing')
    # Support both "Bearer <token>" and raw token formats
    token = auth_header.split(' ')[1] if ' ' in auth_header else auth_header
    payload = jwt.decode(token, _secret_key(), algorithms=['HS256'])
    return payload['user_id']


def token_required(f):
    """
    Decorator to require valid JWT token.

    Extracts user_id from JWT token and passes it as the first argument
    to the decorated function.

    Usage:
        @bp.route('/protected')
        @token_required
        def protected_route(current_user_id):
            return jsonify({'user_id': current_user_id})
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if not request.headers.get('Authorization'):
            return jsonify({'error': 'Token is missing'}), 401

        try:
            current_user_id = _decode_header_token()
        except jwt.ExpiredSignatureError:
            return jsonify({'error': 'Token has expired'}), 401
        except (jwt.InvalidTokenError, KeyError, IndexError):
            return jsonify({'error': 'Token is invalid'}), 401

        return f(current_user_id, *args, **kwargs)
    return decorated


def token_optional(f):
    """
    Decorator that optionally validates JWT token.

    If a valid token is provided, extracts user_id. Otherwise, passes None.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        current_user_id = None

        if request.headers.get('Authorization'):
            try:
                current_user_id = _decode_header_token()
            except (jwt.InvalidTokenError, KeyError, IndexError):
                current_user_id = None  # Token invalid, but it's optional

        return f(current_user_id, *args, **kwargs)
    return decorated


def is_admin_user(user):
    """Admin by role, or by email whitelist (ADMIN_EMAILS)."""
    if not user:
        return False
    if user.is_admin:
        return True
    return user.email.lower() in current_app.config.get('ADMIN_EMAILS', [])


def admin_required(f):
    """Decorator that combines token_required + admin check."""
    @wraps(f)
    @token_required
    def decorated(current_user_id, *args, **kwargs):
        from reliefnet.services import document_store

        user = document_store.get('users', current_user_id)
        if not is_admin_user(user):
            return jsonify({'error': 'Admin access required'}), 403
        return f(current_user_id, *args, **kwargs)
    return decorated
