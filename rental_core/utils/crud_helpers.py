"""
Lookup helpers shared by the services.

These never commit; the calling service decides the transaction boundary.
"""

from typing import Optional, Type, TypeVar

from sqlalchemy.orm import Session

from ..exceptions import not_found

T = TypeVar("T")


def get_record_by_id(session: Session, model_class: Type[T], record_id: str) -> Optional[T]:
    return session.get(model_class, record_id)


def require_record(
    session: Session, model_class: Type[T], record_id: str, resource_type: Optional[str] = None
) -> T:
    """
    Fetch by primary key or raise NotFoundError naming the resource.

    Args:
        session: Database session
        model_class: SQLAlchemy model class
        record_id: Primary key value
        resource_type: Name used in the error; defaults to the class name

    Returns:
        The record instance
    """
    record = get_record_by_id(session, model_class, record_id)
    if record is None:
        name = resource_type or model_class.__name__
        raise not_found(name, **{f"{_snake(name)}_id": record_id})
    return record


def _snake(name: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in name).lstrip("_")
