import pytest

from sweetshop import credentials
from sweetshop.errors import Conflict, InvalidCredentials, ValidationError


def test_hashes_are_salted():
    first = credentials.hash_password("secret", rounds=4)
    second = credentials.hash_password("secret", rounds=4)
    assert first != second


def test_verify_password(db):
    user = credentials.create_user(db, "v@example.com", "secret", rounds=4)
    assert credentials.verify_password(user, "secret")
    assert not credentials.verify_password(user, "Secret")


def test_overlong_password_rejected():
    with pytest.raises(ValidationError):
        credentials.hash_password("x" * 73, rounds=4)


def test_find_user_by_email(db):
    assert credentials.find_user_by_email(db, "missing@example.com") is None
    created = credentials.create_user(db, "found@example.com", "secret", name="Found", rounds=4)
    assert credentials.find_user_by_email(db, "found@example.com").id == created.id


def test_create_user_conflict(db):
    credentials.create_user(db, "dup@example.com", "secret", rounds=4)
    with pytest.raises(Conflict):
        credentials.create_user(db, "dup@example.com", "other", rounds=4)


def test_assign_registration_role():
    assert credentials.assign_registration_role(None) == "user"
    assert credentials.assign_registration_role("user") == "user"
    assert credentials.assign_registration_role("admin") == "admin"


def test_authenticate(db):
    credentials.create_user(db, "auth@example.com", "secret", rounds=4)
    assert credentials.authenticate(db, "auth@example.com", "secret", rounds=4).email == "auth@example.com"
    with pytest.raises(InvalidCredentials) as wrong:
        credentials.authenticate(db, "auth@example.com", "nope", rounds=4)
    with pytest.raises(InvalidCredentials) as unknown:
        credentials.authenticate(db, "nobody@example.com", "secret", rounds=4)
    assert wrong.value.detail == unknown.value.detail


def test_unknown_email_still_checks_a_hash(db, monkeypatch):
    calls = []
    original = credentials._check

    def spy(candidate, hashed):
        calls.append(hashed)
        return original(candidate, hashed)

    monkeypatch.setattr(credentials, "_check", spy)
    with pytest.raises(InvalidCredentials):
        credentials.authenticate(db, "nobody@example.com", "secret", rounds=4)
    assert len(calls) == 1


def test_emails_are_stored_normalized(db):
    user = credentials.create_user(db, "Carol@Example.ORG", "secret", rounds=4)
    assert user.email == "Carol@example.org"
    assert credentials.find_user_by_email(db, "Carol@EXAMPLE.org").id == user.id
    assert credentials.find_user_by_email(db, "not an email") is None
