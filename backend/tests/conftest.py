import os
import sys
import pytest

# Ensure the backend root (containing the `scorekeeper` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from scorekeeper import create_app, db


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    AUTO_CREATE_TABLES = False
    CORS_ORIGINS = ['http://localhost:3000']
    LOG_LEVEL = 'DEBUG'
    RECENT_SESSIONS_LIMIT = 5
    CLOSE_GAME_MARGIN = 5


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import scorekeeper.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
    # In-progress plays are process-wide; start each test with none
    from scorekeeper.api.plays import _plays
    _plays.clear()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_player(flask_app):
    from scorekeeper.services import store

    def _make(name):
        return store.create_player(name)
    return _make


@pytest.fixture()
def make_game(flask_app):
    from scorekeeper.services import store

    def _make(name, template='generic'):
        return store.create_game(name, template)
    return _make
