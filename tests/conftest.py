import pytest
from fastapi.testclient import TestClient

from sweetshop.api import create_app
from sweetshop.config import Settings

TEST_SECRET = "test-signing-secret-0123456789abcdef"


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at an isolated SQLite file for each test."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'sweets.db'}",
        jwt_secret=TEST_SECRET,
        port=8000,
        bcrypt_rounds=4,
        rate_limit_enabled=False,
    )


@pytest.fixture
def app(settings):
    application = create_app(settings)
    yield application
    application.state.engine.dispose()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def session_factory(app):
    return app.state.session_factory


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def issue_token(app):
    def _issue(role="user", user_id=1, email="someone@example.com", **kwargs):
        return app.state.token_service.issue(user_id, role, email, **kwargs)

    return _issue


@pytest.fixture
def admin_headers(issue_token):
    return {"Authorization": f"Bearer {issue_token(role='admin', email='admin@example.com')}"}


@pytest.fixture
def user_headers(issue_token):
    return {"Authorization": f"Bearer {issue_token(role='user')}"}


@pytest.fixture
def sweet_fields():
    return {
        "name": "Chocolate Dream",
        "description": "Layers of dark and milk chocolate",
        "price": 7.5,
        "quantity": 3,
        "category": "Chocolate",
        "image": "https://example.com/chocolate-dream.png",
    }


@pytest.fixture
def create_sweet(client, admin_headers, sweet_fields):
    def _create(**overrides):
        body = {**sweet_fields, **overrides}
        resp = client.post("/api/sweets", json=body, headers=admin_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create
