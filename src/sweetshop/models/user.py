from sqlalchemy import Column, DateTime, Integer, String

from ..database import Base, utcnow

USER_ROLE = "user"
ADMIN_ROLE = "admin"
DEFAULT_DISPLAY_NAME = "Sweet Lover"


class User(Base):
    """SQLAlchemy model for shop accounts."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(320), unique=True, index=True, nullable=False)
    password_hash = Column(String(60), nullable=False)
    role = Column(String(16), default=USER_ROLE, nullable=False)
    name = Column(String(120), default=DEFAULT_DISPLAY_NAME, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
