"""Authentication routes: registration, login and Firebase sign-in."""

from flask import Blueprint, jsonify
from reliefnet import db, limiter
from reliefnet.models import User
from reliefnet.services import document_store
from reliefnet.utils import token_required, generate_token, clean_text, json_object
import logging
import re

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)

# Email validation regex
EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def _auth_response(user, message, status):
    return jsonify({
        'message': message,
        'token': generate_token(user),
        'user': user.to_dict()
    }), status


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per minute")
def register():
    """Register a new account with email and password."""
    try:
        data = json_object()

        if not all(data.get(k) for k in ['name', 'email', 'password']):
            return jsonify({'error': 'Missing required fields'}), 400

        if not all(isinstance(data[k], str) for k in ['name', 'email', 'password']):
            return jsonify({'error': 'name, email and password must be strings'}), 400

        name = data['name'].strip()
        email = data['email'].strip().lower()
        password = data['password']

        if not EMAIL_REGEX.match(email) or len(email) > 120:
            return jsonify({'error': 'Invalid email format'}), 400

        if len(password) < 6:
            return jsonify({'error': 'Password must be at least 6 characters'}), 400

        if len(password) > 128:
            return jsonify({'error': 'Password must be less than 128 characters'}), 400

        if not name or len(name) > 120:
            return jsonify({'error': 'Name must be 1-120 characters'}), 400

        if User.query.filter_by(email=email).first():
            return jsonify({'error': 'Email already exists'}), 409

        user = User(name=name, email=email)
        user.set_password(password)

        db.session.add(user)
        db.session.commit()
        logger.info(f"Registered user {user.id}")

        return _auth_response(user, 'User registered successfully', 201)
    except Exception:
        db.session.rollback()
        raise


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    """Log in with email and password."""
    data = json_object()

    if not data.get('email') or not data.get('password'):
        return jsonify({'error': 'Missing email or password'}), 400

    if not isinstance(data['email'], str) or not isinstance(data['password'], str):
        return jsonify({'error': 'email and password must be strings'}), 400

    user = User.query.filter_by(email=data['email'].strip().lower()).first()

    if not user or not user.check_password(data['password']):
        return jsonify({'error': 'Invalid credentials'}), 401

    return _auth_response(user, 'Login successful', 200)


@auth_bp.route('/firebase', methods=['POST'])
@limiter.limit("10 per minute")
def firebase_login():
    """Exchange a Firebase ID token for a ReliefNet session token.

    The account is created on first sign-in and linked by email when one
    already exists.
    """
    from reliefnet.services.firebase import verify_firebase_token

    data = json_object()
    id_token = data.get('id_token') or data.get('idToken')

    try:
        identity = verify_firebase_token(id_token)
    except ValueError as e:
        logger.warning(f"Firebase sign-in rejected: {e}")
        return jsonify({'error': str(e)}), 401

    try:
        user = User.query.filter_by(firebase_uid=identity['uid']).first()
        created = False
        if user is None:
            user = User.query.filter_by(email=identity['email']).first()
            if user is None:
                user = User(
                    name=identity.get('name') or identity['email'].split('@')[0],
                    email=identity['email'],
                )
                db.session.add(user)
                created = True
            user.firebase_uid = identity['uid']
            db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return _auth_response(
        user,
        'User registered successfully' if created else 'Login successful',
        201 if created else 200,
    )


@auth_bp.route('/me', methods=['GET'])
@token_required
def me(current_user_id):
    """Current user's profile."""
    user = document_store.get('users', current_user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    return jsonify({'user': user.to_dict()}), 200


@auth_bp.route('/me', methods=['PUT'])
@token_required
def update_me(current_user_id):
    """Update name, avatar, preferred language or last known location."""
    user = document_store.get('users', current_user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404

    data = json_object()
    allowed = {'name', 'avatar', 'preferred_language', 'latitude', 'longitude'}
    unknown = set(data.keys()) - allowed
    if unknown:
        return jsonify({'error': f"Unknown fields: {', '.join(sorted(unknown))}"}), 400

    from reliefnet.utils import parse_coordinate, parse_language
    from reliefnet.services.geofence import InvalidCoordinateError

    if 'latitude' in data or 'longitude' in data:
        try:
            coord = parse_coordinate(data.get('latitude'), data.get('longitude'))
        except InvalidCoordinateError as e:
            return jsonify({'error': str(e)}), 400
        data['latitude'] = coord.latitude if coord else None
        data['longitude'] = coord.longitude if coord else None

    if 'preferred_language' in data:
        language = parse_language(data['preferred_language'])
        if not language:
            return jsonify({'error': 'Unsupported language'}), 400
        data['preferred_language'] = language

    if 'name' in data:
        name = clean_text(data['name'])
        if not name or len(name) > 120:
            return jsonify({'error': 'Name must be 1-120 characters'}), 400
        data['name'] = name

    if 'avatar' in data:
        avatar = clean_text(data['avatar'])
        if avatar is None or len(avatar) > 500:
            return jsonify({'error': 'avatar must be a URL string'}), 400
        data['avatar'] = avatar or None

    user = document_store.upsert('users', user.id, data)
    return jsonify({'user': user.to_dict()}), 200
