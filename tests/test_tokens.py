from datetime import datetime, timedelta, timezone

import jwt
import pytest

from sweetshop.tokens import Identity, InvalidToken, JWTTokenService

SECRET = "unit-test-secret-0123456789abcdef0123"


@pytest.fixture
def tokens():
    return JWTTokenService(SECRET)


def test_issue_and_verify(tokens):
    token = tokens.issue(42, "admin", "admin@example.com")
    assert tokens.verify(token) == Identity(user_id="42", role="admin", email="admin@example.com")


def test_token_expires_after_an_hour(tokens):
    issued = datetime.now(timezone.utc) - timedelta(minutes=61)
    token = tokens.issue(1, "user", "u@example.com", issued_at=issued)
    with pytest.raises(InvalidToken):
        tokens.verify(token)


def test_token_valid_just_before_expiry(tokens):
    issued = datetime.now(timezone.utc) - timedelta(minutes=59)
    token = tokens.issue(1, "user", "u@example.com", issued_at=issued)
    assert tokens.verify(token).role == "user"


def test_expiry_claim_is_one_hour_after_issue(tokens):
    token = tokens.issue(1, "user", "u@example.com")
    claims = jwt.decode(token, SECRET, algorithms=["HS256"])
    assert claims["exp"] - claims["iat"] == 3600


def test_tampered_token_is_rejected(tokens):
    token = tokens.issue(1, "user", "u@example.com")
    forged = JWTTokenService("another-secret-0123456789abcdef0123").issue(1, "admin", "u@example.com")
    header, _, signature = token.split(".")
    _, forged_payload, _ = forged.split(".")
    with pytest.raises(InvalidToken):
        tokens.verify(f"{header}.{forged_payload}.{signature}")


@pytest.mark.parametrize("token", ["", "abc", "a.b.c"])
def test_malformed_token_is_rejected(tokens, token):
    with pytest.raises(InvalidToken):
        tokens.verify(token)


def test_missing_claims_are_rejected(tokens):
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode({"sub": "1", "exp": exp}, SECRET, algorithm="HS256")
    with pytest.raises(InvalidToken):
        tokens.verify(token)


def test_secret_is_required():
    with pytest.raises(ValueError):
        JWTTokenService("")


def test_from_settings_uses_configured_lifetime(settings):
    service = JWTTokenService.from_settings(settings.model_copy(update={"access_token_expire_minutes": 5}))
    assert service.lifetime == timedelta(minutes=5)
