import os
import sys
import pytest

# Ensure the backend root (containing the `volleyqueue` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from volleyqueue import create_app, db, socketio
from volleyqueue.services.rotation import clock

T0 = 1_700_000_000.0


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    TURN_WINDOW_SEC = 60
    MAX_MARKS_PER_TURN = 2
    CONFIRMED_CAPACITY = 12
    PLAYER_NAME_MAX_LENGTH = 64
    HEARTBEAT_INTERVAL_SEC = 10
    HEARTBEAT_STALE_SEC = 30
    OFFLINE_GRACE_SEC = 10
    AUTO_ADVANCE_INTERVAL_SEC = 0
    ADMIN_USERNAMES = ['admin']


class FakeClock:
    def __init__(self, start):
        self.t = start

    def __call__(self):
        return self.t

    def advance(self, seconds):
        self.t += seconds
        return self.t


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import volleyqueue.models  # noqa: F401
        db.create_all()
    # No context is held open here: requests must not share flask.g
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_ctx(flask_app):
    """App context for calling services directly."""
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def fake_clock(monkeypatch):
    fc = FakeClock(T0)
    monkeypatch.setattr(clock, 'now', fc)
    return fc


@pytest.fixture()
def make_users(app_ctx):
    """Create users directly; returns their ids in registration order."""
    from volleyqueue.models import User

    def _make(*usernames):
        users = []
        for name in usernames:
            user = User(username=name, display_name=name.capitalize())
            user.set_password('password')
            db.session.add(user)
            users.append(user)
        db.session.commit()
        return [u.id for u in users]
    return _make


@pytest.fixture()
def member_client(flask_app):
    """Register a user through the API; returns (logged-in client, user id)."""
    def _register(username, password='password'):
        member = flask_app.test_client()
        res = member.post('/register', json={'username': username, 'password': password})
        assert res.status_code == 201
        return member, res.get_json()['id']
    return _register


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')
