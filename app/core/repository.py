"""Base repository pattern implementation.

Repositories only read and stage. Committing is left to the service that
owns the unit of work, so one engine operation maps to one transaction.
"""

from typing import Generic, TypeVar, cast
from uuid import UUID

from sqlalchemy.orm import Session

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType]):
    """Generic repository with common read operations.

    Example:
        ```python
        class VideoRepository(BaseRepository[Video]):
            def __init__(self, db: Session):
                super().__init__(db, Video)

            def list_published(self) -> list[Video]:
                return self.db.query(self.model).filter(self.model.is_published).all()
        ```
    """

    def __init__(self, db: Session, model: type[ModelType]):
        """Initialize repository with database session and model class.

        Args:
            db: SQLAlchemy session.
            model: The model class this repository operates on.
        """
        self.db = db
        self.model = model

    def get_by_id(self, entity_id: UUID) -> ModelType | None:
        """Get a single entity by ID.

        Args:
            entity_id: The UUID of the entity.

        Returns:
            The entity if found, None otherwise.
        """
        result = self.db.query(self.model).filter(self.model.id == entity_id).first()  # type: ignore[attr-defined]
        return cast(ModelType | None, result)

    def count(self) -> int:
        result: int = self.db.query(self.model).count()
        return result
