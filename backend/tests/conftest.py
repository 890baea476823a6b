import os
import sys
import pytest

# Ensure the backend root (containing the `checkers` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from checkers import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:5173']
    SOCKETIO_NAMESPACE = '/'
    TURN_DURATION_SEC = 30
    CLOCK_TICK_SEC = 1.0
    HISTORY_LIMIT = 10
    DISCORD_CLIENT_ID = 'client-id'
    DISCORD_CLIENT_SECRET = 'client-secret'
    DISCORD_API_BASE = 'https://identity.test/api'
    IDENTITY_TIMEOUT_SEC = 1
    REQUIRE_VERIFIED_IDENTITY = False


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
def registry(flask_app):
    return flask_app.extensions['checkers_sessions']


@pytest.fixture()
def make_sio(flask_app):
    """Factory for extra Socket.IO test clients; all are disconnected afterwards."""
    created = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except RuntimeError:
            pass


@pytest.fixture()
def sio_client(make_sio):
    return make_sio()
