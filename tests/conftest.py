"""
Pytest configuration and fixtures for testing the ReliefNet API.
"""

import os
import sys
import pytest
from faker import Faker

# Add the parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from reliefnet import create_app, db
from reliefnet.models import User, UserRole, Report, ReportStatus
from reliefnet.services.translation import init_translation_cache
from reliefnet.services.translation_store import MemoryStore
from fakes import FakeTimers, FakeTranslator

fake = Faker()

# Bangalore city centre and a verified incident ~5 km away in Indiranagar
BANGALORE = (12.9716, 77.5946)
INDIRANAGAR = (12.9784, 77.6408)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    os.environ['FLASK_ENV'] = 'testing'
    os.environ['JWT_SECRET_KEY'] = 'test-secret-key-for-testing-0123456789'

    app = create_app('testing')
    app.config['JWT_SECRET_KEY'] = os.environ['JWT_SECRET_KEY']

    with app.app_context():
        db.create_all()

    yield app

    app.extensions['translation_cache'].cancel()
    with app.app_context():
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client for each test function."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create a fresh database session for each test."""
    with app.app_context():
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        yield db.session
        db.session.rollback()


@pytest.fixture
def timers():
    return FakeTimers()


@pytest.fixture
def translator():
    return FakeTranslator()


@pytest.fixture(autouse=True)
def translation_cache(app, translator, timers):
    """Fresh translation cache per test, wired to fakes instead of Gemini and threads."""
    return init_translation_cache(app, translator=translator, store=MemoryStore(), timer_factory=timers)


def _create_user(password='testpassword123', **overrides):
    """Helper to create a user with sensible defaults."""
    data = {
        'name': fake.name(),
        'email': fake.unique.email(),
        'role': UserRole.USER,
    }
    data.update(overrides)
    user = User(**data)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'role': user.role,
        'password': password,
    }


@pytest.fixture
def test_user(app, db_session):
    """Create a test user."""
    with app.app_context():
        return _create_user()


@pytest.fixture
def second_user(app, db_session):
    """Create a second test user for interaction tests."""
    with app.app_context():
        return _create_user(password='testpassword456')


@pytest.fixture
def admin_user(app, db_session):
    with app.app_context():
        return _create_user(password='adminpassword123', role=UserRole.ADMIN)


def _get_token(client, email, password):
    """Login and return JWT token."""
    resp = client.post('/api/auth/login', json={
        'email': email,
        'password': password,
    })
    data = resp.get_json()
    if not data or not data.get('token'):
        raise RuntimeError(
            f"Login failed: status={resp.status_code}, body={resp.data[:200]}"
        )
    return data['token']


@pytest.fixture
def auth_headers(client, test_user):
    """Get authentication headers for test user."""
    token = _get_token(client, test_user['email'], test_user['password'])
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def second_auth_headers(client, second_user):
    token = _get_token(client, second_user['email'], second_user['password'])
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_headers(client, admin_user):
    token = _get_token(client, admin_user['email'], admin_user['password'])
    return {'Authorization': f'Bearer {token}'}


def _create_report(user, status=ReportStatus.PENDING, coords=INDIRANAGAR, **overrides):
    data = {
        'user_id': user['id'],
        'user_name': user['name'],
        'user_email': user['email'],
        'title': fake.sentence(nb_words=4),
        'description': fake.paragraph(),
        'location': 'Bangalore',
        'latitude': coords[0] if coords else None,
        'longitude': coords[1] if coords else None,
        'status': status,
    }
    data.update(overrides)
    report = Report(**data)
    db.session.add(report)
    db.session.commit()
    return {'id': report.id, 'title': report.title, 'status': report.status}


@pytest.fixture
def test_report(app, db_session, test_user):
    """A pending report in Indiranagar."""
    with app.app_context():
        return _create_report(test_user)


@pytest.fixture
def verified_report(app, db_session, test_user):
    """A verified report in Indiranagar."""
    with app.app_context():
        return _create_report(test_user, status=ReportStatus.VERIFIED)


@pytest.fixture
def make_report(app, db_session, test_user):
    """Factory for extra reports: make_report(status=..., coords=(lat, lng) or None)."""
    def factory(**kwargs):
        with app.app_context():
            return _create_report(test_user, **kwargs)
    return factory
