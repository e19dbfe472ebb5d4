"""
Base repository for CoinVest

This module provides a base repository class for database operations.
Repositories only flush; committing is left to the service that owns the
unit of work so a trade's writes land in one transaction.
"""

from typing import Generic, TypeVar, Type, Optional, Dict, Any, Union
from sqlalchemy.orm import Session
from pydantic import BaseModel

from coinvest.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class BaseRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """Base repository for CRUD operations"""

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize the repository

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    def get(self, id: Any) -> Optional[ModelType]:
        """
        Get a record by ID

        Args:
            id: Record ID

        Returns:
            Optional[ModelType]: Record or None if not found
        """
        return self.db.get(self.model, id)

    def create(self, *, obj_in: Union[CreateSchemaType, Dict[str, Any]]) -> ModelType:
        """
        Create a new record

        Args:
            obj_in: Create schema or dictionary

        Returns:
            ModelType: Created record, flushed but not committed
        """
        if isinstance(obj_in, dict):
            obj_in_data = obj_in
        else:
            obj_in_data = obj_in.model_dump(exclude_unset=True)

        db_obj = self.model(**obj_in_data)
        self.db.add(db_obj)
        self.db.flush()

        return db_obj

    def update(
        self,
        *,
        db_obj: ModelType,
        obj_in: Union[UpdateSchemaType, Dict[str, Any]]
    ) -> ModelType:
        """
        Update a record

        Args:
            db_obj: Database object to update
            obj_in: Update schema or dictionary

        Returns:
            ModelType: Updated record
        """
        obj_data = db_obj.to_dict()

        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)

        for field in obj_data:
            if field in update_data:
                setattr(db_obj, field, update_data[field])

        self.db.add(db_obj)
        self.db.flush()

        return db_obj

    def remove(self, *, db_obj: ModelType) -> ModelType:
        """
        Delete a record

        Args:
            db_obj: Database object to delete

        Returns:
            ModelType: Deleted record
        """
        self.db.delete(db_obj)
        self.db.flush()

        return db_obj
