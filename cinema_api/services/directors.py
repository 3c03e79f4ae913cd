from typing import List, Optional
from sqlalchemy.orm import Session
import logging

from cinema_api.core.errors import NotFoundError
from cinema_api.models.catalog import Director
from cinema_api.models.schemas import DirectorIn
from cinema_api.services.repository import Repository

logger = logging.getLogger(__name__)


class DirectorService:

    def __init__(self, db: Session):
        self.directors = Repository(db, Director)

    def list_directors(self) -> List[Director]:
        return self.directors.list_all()

    def get_director(self, id: int) -> Optional[Director]:
        return self.directors.get_by_id(id)

    def create_director(self, data: DirectorIn) -> Director:
        director = Director(name=data.name, surname=data.surname)
        self.directors.insert(director)
        self.directors.save()
        self.directors.refresh(director)
        logger.info("Director created", extra={"director_id": director.id})
        return director

    def update_director(self, id: int, data: DirectorIn) -> Director:
        director = self.directors.get_by_id(id)
        if director is None:
            logger.warning("Director not found for update", extra={"director_id": id})
            raise NotFoundError(f"Director with id {id} not found.")
        director.name = data.name
        director.surname = data.surname
        self.directors.update(director)
        self.directors.save()
        return director

    def delete_director(self, id: int) -> bool:
        if not self.directors.delete(id):
            logger.warning("Director not found for deletion", extra={"director_id": id})
            return False
        self.directors.save()
        logger.info("Director deleted", extra={"director_id": id})
        return True
