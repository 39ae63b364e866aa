from datetime import datetime, timedelta

import pytest
from courtside.app import create_app, db
from courtside.services import build_services


class FakeClock:
    """Manually advanced stand-in for ``utcnow_naive``."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 6, 1, 18, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock(app):
    """Swap the app's services for ones driven by a fake clock."""
    fake = FakeClock()
    app.extensions['courtside'] = build_services(app.config, clock=fake)
    return fake


@pytest.fixture
def services(app, clock):
    return app.extensions['courtside']


@pytest.fixture
def auth_headers(client):
    """Register a user and return auth headers."""
    res = client.post('/api/auth/register', json={
        'username': 'testuser', 'email': 'test@example.com',
        'password': 'password123', 'display_name': 'Test User',
    })
    token = res.get_json()['token']
    return {'Authorization': f'Bearer {token}', 'Content-Type': 'application/json'}


@pytest.fixture
def admin_headers(app, client):
    """Register a configured admin and return auth headers."""
    app.config['ADMIN_EMAILS'] = 'admin@example.com'
    res = client.post('/api/auth/register', json={
        'username': 'adminuser', 'email': 'admin@example.com',
        'password': 'password123',
    })
    token = res.get_json()['token']
    return {'Authorization': f'Bearer {token}', 'Content-Type': 'application/json'}


@pytest.fixture
def sample_park(app):
    """An approved park with a full court, a half court and a pickleball court."""
    from courtside.models import Court, Park
    park = Park(
        name='Test Park', address='123 Test St', city='Eureka', state='CA',
        latitude=40.8021, longitude=-124.1637, approved=True,
        review_status='approved',
    )
    park.courts.append(Court(court_number=1, sport_type='basketball'))
    park.courts.append(Court(court_number=2, sport_type='basketball', is_half_court=True))
    park.courts.append(Court(court_number=3, sport_type='pickleball_doubles'))
    db.session.add(park)
    db.session.commit()
    return park


@pytest.fixture
def make_user(app):
    """Factory for users created straight in the database."""
    from courtside.models import User

    def _make_user(username, is_admin=False):
        user = User(
            username=username, email=f'{username}@example.com',
            password_hash='x', is_admin=is_admin,
        )
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user
