from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_restx import Api
import logging
import os
from dotenv import load_dotenv

load_dotenv()

db = SQLAlchemy()
limiter = Limiter(key_func=get_remote_address)

logger = logging.getLogger(__name__)


def create_app(config_name='development'):
    app = Flask(__name__)
    testing = config_name == 'testing'

    logging.basicConfig(
        level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    # Config
    if testing:
        app.config['TESTING'] = True
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
        app.config['RATELIMIT_ENABLED'] = False
    else:
        app.config['SQLALCHEMY_DATABASE_URI'] = os.getenv(
            'DATABASE_URL',
            'sqlite:///reliefnet.db'
        )

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['JWT_EXPIRES_HOURS'] = int(os.getenv('JWT_EXPIRES_HOURS', 24))
    app.config['ADMIN_EMAILS'] = [
        e.strip().lower() for e in os.getenv('ADMIN_EMAILS', '').split(',') if e.strip()
    ]

    # Geofencing and translation
    app.config['NEARBY_RADIUS_KM'] = float(os.getenv('NEARBY_RADIUS_KM', 10))
    app.config['DEFAULT_LANGUAGE'] = os.getenv('DEFAULT_LANGUAGE', 'en')
    app.config['SUPPORTED_LANGUAGES'] = [
        code.strip() for code in os.getenv('SUPPORTED_LANGUAGES', 'en,kn,hi').split(',') if code.strip()
    ]
    app.config['TRANSLATION_DEBOUNCE_MS'] = int(os.getenv('TRANSLATION_DEBOUNCE_MS', 800))
    app.config['TRANSLATION_MAX_RETRIES'] = int(os.getenv('TRANSLATION_MAX_RETRIES', 3))
    app.config['TRANSLATION_FLIGHT_TIMEOUT'] = float(os.getenv('TRANSLATION_FLIGHT_TIMEOUT', 30))
    app.config['TRANSLATION_STORE'] = 'memory' if testing else os.getenv('TRANSLATION_STORE', 'file')
    app.config['TRANSLATION_CACHE_PATH'] = os.getenv(
        'TRANSLATION_CACHE_PATH', 'translation_cache.json'
    )

    # Initialize extensions
    db.init_app(app)
    limiter.init_app(app)
    CORS(app, origins=os.getenv('CORS_ORIGINS', '*').split(','))

    # Create API
    Api(app, version='1.0', title='ReliefNet API', doc='/api/docs')

    # Create tables with error handling
    with app.app_context():
        from reliefnet import models  # noqa: F401 - registers tables
        try:
            db.create_all()
        except Exception as e:
            logger.warning(f"Could not create database tables: {e}")

    from reliefnet.services.translation import init_translation_cache
    init_translation_cache(app)

    # Register routes
    from reliefnet.routes import register_routes
    register_routes(app)

    # Health check
    @app.route('/health', methods=['GET'])
    def health():
        return {'status': 'ok'}, 200

    @app.errorhandler(500)
    def internal_error(e):
        logger.error(f"Unhandled error: {e}")
        return jsonify({'error': 'Internal server error'}), 500

    return app
