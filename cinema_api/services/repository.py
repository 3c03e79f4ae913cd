from typing import Generic, List, Optional, Type, TypeVar
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging

from cinema_api.core.database import Base

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Base)


class Repository(Generic[T]):
    """Data access for one mapped entity type.

    Writes are staged on the session; callers commit through ``save``.
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model

    def get_by_id(self, id: int) -> Optional[T]:
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError:
            logger.exception("Lookup failed", extra={"entity": self.model.__name__, "id": id})
            raise

    def list_all(self) -> List[T]:
        try:
            return self.db.query(self.model).order_by(self.model.id).all()
        except SQLAlchemyError:
            logger.exception("Listing failed", extra={"entity": self.model.__name__})
            raise

    def find_by(self, **filters) -> Optional[T]:
        try:
            return self.db.query(self.model).filter_by(**filters).first()
        except SQLAlchemyError:
            logger.exception("Filtered lookup failed", extra={"entity": self.model.__name__})
            raise

    def insert(self, entity: T) -> T:
        self.db.add(entity)
        return entity

    def update(self, entity: T) -> T:
        return self.db.merge(entity)

    def delete(self, id: int) -> bool:
        entity = self.get_by_id(id)
        if entity is None:
            return False
        self.db.delete(entity)
        return True

    def save(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def refresh(self, entity: T) -> T:
        self.db.refresh(entity)
        return entity
