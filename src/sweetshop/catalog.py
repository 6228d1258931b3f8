"""Catalog storage: CRUD over sweets and filtered listing."""

import logging
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .database import handle_storage_error
from .errors import NotFound, ValidationError, describe_validation_errors
from .models.sweet import Sweet
from .query import SweetQuery
from .schemas import SweetCreate, SweetUpdate

logger = logging.getLogger(__name__)

SWEET_FIELDS = ("name", "description", "price", "quantity", "category", "image")


def _validated(fields: Mapping[str, Any]) -> dict:
    try:
        return SweetCreate.model_validate(dict(fields)).model_dump()
    except SchemaValidationError as exc:
        raise ValidationError(describe_validation_errors(exc.errors())) from exc


def build_filters(query: SweetQuery) -> list:
    """Translate a SweetQuery into SQLAlchemy WHERE clauses."""
    clauses = []
    if query.text is not None:
        needle = query.text.lower()
        clauses.append(
            or_(
                func.lower(Sweet.name).contains(needle, autoescape=True),
                func.lower(Sweet.description).contains(needle, autoescape=True),
            )
        )
    if query.category is not None:
        clauses.append(Sweet.category == query.category)
    if query.min_price is not None:
        clauses.append(Sweet.price >= query.min_price)
    if query.max_price is not None:
        clauses.append(Sweet.price <= query.max_price)
    return clauses


def list_sweets(db: Session, query: Optional[SweetQuery] = None) -> List[Sweet]:
    """Return sweets matching ``query`` (all sweets when omitted), oldest first."""
    stmt = select(Sweet)
    if query is not None:
        clauses = build_filters(query)
        if clauses:
            stmt = stmt.where(and_(*clauses))
    stmt = stmt.order_by(Sweet.created_at, Sweet.id)
    try:
        return list(db.scalars(stmt))
    except SQLAlchemyError as exc:
        handle_storage_error(db, exc)


def get_sweet(db: Session, sweet_id: str) -> Sweet:
    try:
        sweet = db.get(Sweet, sweet_id)
    except SQLAlchemyError as exc:
        handle_storage_error(db, exc)
    if sweet is None:
        raise NotFound()
    return sweet


def create_sweet(db: Session, fields: Mapping[str, Any]) -> Sweet:
    values = _validated(fields)
    sweet = Sweet(**values)
    try:
        db.add(sweet)
        db.commit()
        db.refresh(sweet)
    except SQLAlchemyError as exc:
        handle_storage_error(db, exc)
    logger.info("created sweet id=%s name=%s", sweet.id, sweet.name)
    return sweet


def update_sweet(db: Session, sweet_id: str, changes: Mapping[str, Any]) -> Sweet:
    """Apply a partial update, validating the merged record.

    Only the fields present in ``changes`` are written back.
    """
    try:
        updates = SweetUpdate.model_validate(dict(changes)).model_dump(exclude_unset=True)
    except SchemaValidationError as exc:
        raise ValidationError(describe_validation_errors(exc.errors())) from exc

    sweet = get_sweet(db, sweet_id)
    merged = {field: getattr(sweet, field) for field in SWEET_FIELDS}
    merged.update(updates)
    values = _validated(merged)

    try:
        for field in updates:
            setattr(sweet, field, values[field])
        db.commit()
        db.refresh(sweet)
    except SQLAlchemyError as exc:
        handle_storage_error(db, exc)
    logger.info("updated sweet id=%s fields=%s", sweet_id, sorted(updates))
    return sweet


def delete_sweet(db: Session, sweet_id: str) -> None:
    sweet = get_sweet(db, sweet_id)
    try:
        db.delete(sweet)
        db.commit()
    except SQLAlchemyError as exc:
        handle_storage_error(db, exc)
    logger.info("deleted sweet id=%s", sweet_id)
