from typing import TypeVar, Generic, Type, Optional
from uuid import UUID
from sqlalchemy.exc import SQLAlchemyError
from ..extensions import db

T = TypeVar('T')


class BaseRepository(Generic[T]):
    """
    Base repository class providing common CRUD operations for all models.
    Tenant-owned models get organization-scoped helpers on top.
    """

    def __init__(self, model_class: Type[T]):
        self.model_class = model_class
        self.session = db.session

    def create(self, **kwargs) -> T:
        """
        Create and commit a new instance of the model.

        Args:
            **kwargs: Fields to set on the model

        Returns:
            The created model instance

        Raises:
            SQLAlchemyError: If database operation fails
        """
        try:
            instance = self.model_class(**kwargs)
            self.session.add(instance)
            self.session.commit()
            return instance
        except SQLAlchemyError as e:
            self.session.rollback()
            raise e

    def add(self, **kwargs) -> T:
        """
        Stage a new instance in the current transaction without committing.
        The caller commits once the whole unit of work is staged.
        """
        instance = self.model_class(**kwargs)
        self.session.add(instance)
        return instance

    def get_by_id(self, id: UUID) -> Optional[T]:
        """
        Get a model instance by its ID.

        Args:
            id: The UUID of the instance

        Returns:
            The model instance or None if not found
        """
        return self.session.query(self.model_class).filter_by(id=id).first()

    def get_for_organization(self, id: UUID, organization_id: UUID) -> Optional[T]:
        """
        Get a model instance by ID only if it belongs to the organization.

        Args:
            id: The UUID of the instance
            organization_id: The owning organization's UUID

        Returns:
            The model instance or None if missing or owned by another tenant
        """
        return self.session.query(self.model_class).filter_by(
            id=id,
            organization_id=organization_id
        ).first()

    def delete(self, id: UUID) -> bool:
        """
        Delete a model instance by ID.

        Args:
            id: The UUID of the instance to delete

        Returns:
            True if deleted, False if not found

        Raises:
            SQLAlchemyError: If database operation fails
        """
        try:
            instance = self.get_by_id(id)
            if not instance:
                return False

            self.session.delete(instance)
            self.session.commit()
            return True
        except SQLAlchemyError as e:
            self.session.rollback()
            raise e

    def delete_for_organization(self, organization_id: UUID) -> int:
        """
        Bulk-delete every row owned by an organization. Does not commit.

        Returns:
            Number of rows deleted
        """
        return self.session.query(self.model_class).filter_by(
            organization_id=organization_id
        ).delete(synchronize_session=False)

    def commit(self) -> None:
        """Commit the current transaction."""
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise e

    def rollback(self) -> None:
        """Rollback the current transaction."""
        self.session.rollback()

    def flush(self) -> None:
        """Flush pending changes without committing."""
        try:
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise e
