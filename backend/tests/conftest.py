import os
import sys
import pytest

# Ensure the backend root (containing the `heart_hunt` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from heart_hunt import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    CORS_ORIGINS = ['http://localhost:3000']
    HEART_API_URL = 'https://hearts.test/api.php'
    HEART_API_TIMEOUT_SEC = 1.0
    DEFAULT_PAGE_LIMIT = 10
    MINI_GAME_CHANCES = 3
    MINI_GAME_DURATION_SEC = 20
    EASY_DURATION_SEC = 60
    MEDIUM_DURATION_SEC = 40
    HARD_DURATION_SEC = 30
    EXPERT_DURATION_SEC = 15


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import heart_hunt.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_user(flask_app):
    from heart_hunt.models import User

    def _make(username, user_id=None, password='password', **fields):
        user = User(username=username, email=f'{username}@example.com', **fields)
        if user_id is not None:
            user.id = user_id
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture()
def auth_client(client, make_user):
    """A test client logged in as 'finn' (user id 'u1')."""
    make_user('finn', user_id='u1')
    res = client.post('/api/auth/login', json={'username': 'finn', 'password': 'password'})
    assert res.status_code == 200
    return client


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
