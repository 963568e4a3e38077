"""Database query utility functions."""
from typing import Optional, TypeVar, Type, Any
from sqlalchemy import or_
from sqlalchemy.orm import Session

T = TypeVar("T")


def get_by_field(
    db: Session,
    model: Type[T],
    field_name: str,
    field_value: Any,
) -> Optional[T]:
    """
    Get a model instance by a specific field.

    Args:
        db: Database session
        model: SQLAlchemy model class
        field_name: Name of the field to filter by
        field_value: Value to filter by

    Returns:
        Model instance or None
    """
    field = getattr(model, field_name)
    return db.query(model).filter(field == field_value).first()


def get_by_any_field(db: Session, model: Type[T], **values: Any) -> Optional[T]:
    """Get the first model instance matching any of the given field values."""
    clauses = [getattr(model, name) == value for name, value in values.items()]
    return db.query(model).filter(or_(*clauses)).first()


def count_rows(db: Session, model: Type[T]) -> int:
    """Count all rows of a model."""
    return db.query(model).count()
