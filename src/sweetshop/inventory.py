"""Stock mutations: purchase and restock.

Both operations are single UPDATE statements so the database serializes
writers on the same row. A purchase only decrements when ``quantity > 0``,
which keeps two buyers from both taking the last unit.
"""

import logging
import math
import re

from prometheus_client import Counter
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import handle_storage_error
from .errors import NotFound, OutOfStock
from .models.sweet import Sweet

logger = logging.getLogger(__name__)

DEFAULT_RESTOCK_AMOUNT = 10
# leading integer of a string; trailing text is ignored
LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")

PURCHASE_COUNTER = Counter(
    "sweet_purchases_total", "Purchase attempts by outcome", ["outcome"]
)
RESTOCKED_UNITS_COUNTER = Counter(
    "sweet_restocked_units_total", "Total units added by restocks"
)


def resolve_restock_amount(raw) -> int:
    """Return ``raw`` as a positive int, or the default restock amount.

    Strings are read up to the first non-digit, so ``"5abc"`` is 5.
    """
    if raw is None or isinstance(raw, bool):
        return DEFAULT_RESTOCK_AMOUNT
    amount = None
    if isinstance(raw, int):
        amount = raw
    elif isinstance(raw, float):
        if math.isfinite(raw):
            amount = int(raw)
    elif isinstance(raw, str):
        match = LEADING_INT_RE.match(raw)
        if match:
            amount = int(match.group(1))
    if amount is None or amount < 1:
        return DEFAULT_RESTOCK_AMOUNT
    return amount


def _reload(db: Session, sweet_id: str) -> Sweet:
    return db.get(Sweet, sweet_id, populate_existing=True)


def purchase(db: Session, sweet_id: str) -> Sweet:
    """Take one unit of a sweet out of stock and return the updated record."""
    try:
        result = db.execute(
            update(Sweet)
            .where(Sweet.id == sweet_id, Sweet.quantity > 0)
            .values(quantity=Sweet.quantity - 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            exists = db.execute(select(Sweet.id).where(Sweet.id == sweet_id)).first()
            db.rollback()
            if exists is None:
                PURCHASE_COUNTER.labels(outcome="not_found").inc()
                raise NotFound()
            PURCHASE_COUNTER.labels(outcome="out_of_stock").inc()
            logger.info("purchase rejected, sweet id=%s is out of stock", sweet_id)
            raise OutOfStock()
        sweet = _reload(db, sweet_id)
        db.commit()
    except SQLAlchemyError as exc:
        handle_storage_error(db, exc)

    PURCHASE_COUNTER.labels(outcome="success").inc()
    logger.info("purchased sweet id=%s remaining=%d", sweet_id, sweet.quantity)
    return sweet


def restock(db: Session, sweet_id: str, amount=DEFAULT_RESTOCK_AMOUNT) -> Sweet:
    """Add ``amount`` units (see :func:`resolve_restock_amount`) to a sweet."""
    amount = resolve_restock_amount(amount)
    try:
        result = db.execute(
            update(Sweet)
            .where(Sweet.id == sweet_id)
            .values(quantity=Sweet.quantity + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            raise NotFound()
        sweet = _reload(db, sweet_id)
        db.commit()
    except SQLAlchemyError as exc:
        handle_storage_error(db, exc)

    RESTOCKED_UNITS_COUNTER.inc(amount)
    logger.info("restocked sweet id=%s by %d, now %d", sweet_id, amount, sweet.quantity)
    return sweet
