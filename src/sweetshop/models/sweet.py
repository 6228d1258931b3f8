import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String, Text

from ..database import Base, utcnow

PLACEHOLDER_IMAGE = "https://placehold.co/400?text=Sweet"


def new_sweet_id() -> str:
    return uuid.uuid4().hex


class Sweet(Base):
    """A purchasable catalog item and its stock level."""

    __tablename__ = "sweets"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_sweets_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_sweets_price_non_negative"),
    )

    id = Column(String(32), primary_key=True, default=new_sweet_id)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    category = Column(String(100), index=True, nullable=False)
    image = Column(String(2048), nullable=False, default=PLACEHOLDER_IMAGE)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
