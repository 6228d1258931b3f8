import pytest
from pydantic import ValidationError

from sweetshop import api
from sweetshop.config import Settings, get_settings

REQUIRED = ("DATABASE_URL", "JWT_SECRET", "PORT")


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in REQUIRED:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


def test_settings_from_environment(clean_env):
    clean_env.setenv("DATABASE_URL", "sqlite:///shop.db")
    clean_env.setenv("JWT_SECRET", "from-env")
    clean_env.setenv("PORT", "5050")
    clean_env.setenv("RATE_LIMIT_ENABLED", "false")
    settings = Settings()
    assert settings.database_url == "sqlite:///shop.db"
    assert settings.jwt_secret == "from-env"
    assert settings.port == 5050
    assert settings.rate_limit_enabled is False
    assert settings.access_token_expire_minutes == 60


@pytest.mark.parametrize("missing", REQUIRED)
def test_required_settings(clean_env, missing):
    values = {"DATABASE_URL": "sqlite:///shop.db", "JWT_SECRET": "s", "PORT": "5050"}
    for name, value in values.items():
        if name != missing:
            clean_env.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings()


def test_empty_secret_is_rejected(clean_env):
    clean_env.setenv("DATABASE_URL", "sqlite:///shop.db")
    clean_env.setenv("JWT_SECRET", "")
    clean_env.setenv("PORT", "5050")
    with pytest.raises(ValidationError):
        Settings()


def test_main_refuses_to_start_without_configuration(clean_env):
    served = []
    clean_env.setattr(api.uvicorn, "run", lambda *args, **kwargs: served.append(args))
    with pytest.raises(SystemExit) as exc:
        api.main()
    assert exc.value.code == 1
    assert served == []


def test_main_serves_configured_app(clean_env, tmp_path):
    clean_env.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'main.db'}")
    clean_env.setenv("JWT_SECRET", "main-secret-0123456789abcdef0123456")
    clean_env.setenv("PORT", "5051")
    served = {}

    def fake_run(app, host, port):
        served.update(app=app, host=host, port=port)

    clean_env.setattr(api.uvicorn, "run", fake_run)
    api.main()
    assert served["port"] == 5051
    assert served["host"] == "0.0.0.0"
    assert served["app"].state.settings.port == 5051
    served["app"].state.engine.dispose()
