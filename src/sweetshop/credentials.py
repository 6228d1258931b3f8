"""Account storage and password checks."""

import logging
from functools import lru_cache
from typing import Optional

import bcrypt
from email_validator import EmailNotValidError, validate_email
from prometheus_client import Counter
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .database import handle_storage_error
from .errors import Conflict, InvalidCredentials, ValidationError
from .models.user import DEFAULT_DISPLAY_NAME, USER_ROLE, User

logger = logging.getLogger(__name__)

DEFAULT_BCRYPT_ROUNDS = 10
# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72

REGISTRATION_COUNTER = Counter(
    "user_registrations_total", "Total accounts registered", ["role"]
)
LOGIN_FAILURE_COUNTER = Counter("login_failures_total", "Total failed logins")


def hash_password(password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds)).decode("ascii")


def _check(candidate: str, hashed: str) -> bool:
    encoded = candidate.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    return bcrypt.checkpw(encoded, hashed.encode("ascii"))


def verify_password(user: User, candidate: str) -> bool:
    return _check(candidate, user.password_hash)


def normalize_email(email: str) -> str:
    """Canonical stored form of an address, as produced by ``EmailStr``."""
    return validate_email(email, check_deliverability=False).normalized


@lru_cache(maxsize=None)
def _dummy_hash(rounds: int) -> str:
    return hash_password("not-a-real-password", rounds)


def assign_registration_role(requested: Optional[str]) -> str:
    """Role given to a self-registered account.

    The requested role is honoured as sent, so anyone can register an admin.
    Returning USER_ROLE unconditionally here closes that path.
    """
    return requested or USER_ROLE


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    try:
        email = normalize_email(email)
    except EmailNotValidError:
        return None
    try:
        return db.scalars(select(User).where(User.email == email)).first()
    except SQLAlchemyError as exc:
        handle_storage_error(db, exc)


def create_user(
    db: Session,
    email: str,
    password: str,
    name: Optional[str] = None,
    role: str = USER_ROLE,
    rounds: int = DEFAULT_BCRYPT_ROUNDS,
) -> User:
    try:
        email = normalize_email(email)
    except EmailNotValidError as exc:
        raise ValidationError(f"email: {exc}") from exc
    if find_user_by_email(db, email) is not None:
        raise Conflict()
    user = User(
        email=email,
        password_hash=hash_password(password, rounds),
        name=name or DEFAULT_DISPLAY_NAME,
        role=role,
    )
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as exc:
        # lost a race with a concurrent registration of the same email
        db.rollback()
        raise Conflict() from exc
    except SQLAlchemyError as exc:
        handle_storage_error(db, exc)
    REGISTRATION_COUNTER.labels(role=user.role).inc()
    logger.info("registered user id=%s role=%s", user.id, user.role)
    return user


def authenticate(
    db: Session, email: str, password: str, rounds: int = DEFAULT_BCRYPT_ROUNDS
) -> User:
    """Return the user for valid credentials, else raise InvalidCredentials.

    Unknown emails still pay for a bcrypt comparison and get the same error
    as a wrong password.
    """
    user = find_user_by_email(db, email)
    if user is None:
        _check(password, _dummy_hash(rounds))
        ok = False
    else:
        ok = verify_password(user, password)
    if not ok:
        LOGIN_FAILURE_COUNTER.inc()
        logger.info("failed login attempt")
        raise InvalidCredentials()
    return user
