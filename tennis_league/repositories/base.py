"""
Base repository class for data access layer.

Repositories keep query logic in one place and give the services a small,
mockable surface over the SQLAlchemy session. They never commit; the service
that owns the session decides where a unit of work ends.

Example:
    class PlayerRepository(BaseRepository[Player]):
        def find_by_name(self, name: str) -> Optional[Player]:
            return self.where_first(Player.name == name)
"""
from abc import ABC
from typing import TypeVar, Generic, Type, Optional, List
from sqlalchemy.orm import Query, Session

T = TypeVar("T")


class BaseRepository(Generic[T], ABC):
    """
    Common data access methods for one model type.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    # ========================================================================
    # CRUD Operations
    # ========================================================================

    def find_by_id(self, id: int) -> Optional[T]:
        """Find a single record by primary key."""
        return self.db.get(self.model_type, id)

    def update(self, instance: T, **kwargs) -> T:
        """Set attributes on an already loaded record."""
        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        return instance

    def delete(self, instance: T) -> None:
        """Mark a loaded record for deletion."""
        self.db.delete(instance)

    # ========================================================================
    # Query Builders
    # ========================================================================

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)

    def where(self, *criterion) -> List[T]:
        """Filter records using SQLAlchemy expressions."""
        return self.db.query(self.model_type).filter(*criterion).all()

    def where_first(self, *criterion) -> Optional[T]:
        """Filter records using SQLAlchemy expressions and return first match."""
        return self.db.query(self.model_type).filter(*criterion).first()

    # ========================================================================
    # Existence Checks
    # ========================================================================

    def exists(self, id: int) -> bool:
        """Check if a record with given ID exists."""
        return self.exists_where(self.model_type.id == id)

    def exists_where(self, *criterion) -> bool:
        """Check if any record matching the criterion exists."""
        return self.db.query(
            self.db.query(self.model_type).filter(*criterion).exists()
        ).scalar()
