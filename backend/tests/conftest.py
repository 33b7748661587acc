import os
import sys
import pytest

# Ensure the backend root (containing the `quizbuzz` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizbuzz import create_app, db, socketio, get_engine


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    HOST_NAME = 'host'
    HOST_PASSWORD = 'hostpw'
    CORRECT_POINTS = 5
    WRONG_ANSWER_PENALTY = 0
    CONSOLATION_POINTS = 1
    ALLOW_PLAYER_REGISTRATION = True
    INITIAL_BUZZER_STATUS = 'closed'
    QUESTION_INDEX_POLICY = 'clamp'
    BCRYPT_LOG_ROUNDS = 4


class Outbox:
    """Collects (sid, payload) pairs handed to the engine's deliver callback."""

    def __init__(self):
        self.sent = []

    def deliver(self, sid, payload):
        self.sent.append((sid, payload))

    def to(self, sid, kind=None):
        return [p for s, p in self.sent if s == sid and (kind is None or p['type'] == kind)]

    def of_type(self, kind):
        return [(s, p) for s, p in self.sent if p['type'] == kind]

    def clear(self):
        self.sent = []


def socket_payloads(received, kind=None):
    """Unwrap 'message' packets from a Socket.IO test client."""
    out = []
    for pkt in received:
        if pkt['name'] != 'message':
            continue
        args = pkt['args']
        payload = args[0] if isinstance(args, list) else args
        if kind is None or payload.get('type') == kind:
            out.append(payload)
    return out


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def engine(flask_app):
    return get_engine(flask_app)


@pytest.fixture()
def outbox():
    return Outbox()


@pytest.fixture()
def seeded(engine):
    for name in ('Alice', 'Bob', 'Cara'):
        engine.player_store.upsert(name, password='pw')
    return engine


@pytest.fixture()
def make_sio(flask_app):
    clients = []

    def _make():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws'
        )
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def sio_client(make_sio):
    return make_sio()
