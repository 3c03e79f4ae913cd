from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy.orm import Session
import logging

from cinema_api.core.errors import InvalidReferenceError, NotFoundError
from cinema_api.models.catalog import Director, Movie
from cinema_api.models.schemas import MovieIn
from cinema_api.services.repository import Repository

logger = logging.getLogger(__name__)


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MovieService:

    def __init__(self, db: Session):
        self.movies = Repository(db, Movie)
        self.directors = Repository(db, Director)

    def _check_director(self, director_id: int) -> None:
        if self.directors.get_by_id(director_id) is None:
            logger.warning("Unknown director referenced", extra={"director_id": director_id})
            raise InvalidReferenceError(f"Director with id {director_id} does not exist.")

    def list_movies(self) -> List[Movie]:
        return self.movies.list_all()

    def get_movie(self, id: int) -> Optional[Movie]:
        return self.movies.get_by_id(id)

    def create_movie(self, data: MovieIn) -> Movie:
        self._check_director(data.director_id)
        movie = Movie(
            title=data.title,
            description=data.description,
            release_date=to_utc(data.release_date),
            genre=data.genre,
            director_id=data.director_id,
        )
        self.movies.insert(movie)
        self.movies.save()
        self.movies.refresh(movie)
        logger.info("Movie created", extra={"movie_id": movie.id, "title": movie.title})
        return movie

    def update_movie(self, id: int, data: MovieIn) -> Movie:
        movie = self.movies.get_by_id(id)
        if movie is None:
            logger.warning("Movie not found for update", extra={"movie_id": id})
            raise NotFoundError(f"Movie with id {id} not found.")
        self._check_director(data.director_id)

        movie.title = data.title
        movie.description = data.description
        movie.release_date = to_utc(data.release_date)
        movie.genre = data.genre
        movie.director_id = data.director_id

        self.movies.update(movie)
        self.movies.save()
        return movie

    def delete_movie(self, id: int) -> bool:
        if not self.movies.delete(id):
            logger.warning("Movie not found for deletion", extra={"movie_id": id})
            return False
        self.movies.save()
        logger.info("Movie deleted", extra={"movie_id": id})
        return True
