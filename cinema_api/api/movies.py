from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session
from typing import List
import logging

from cinema_api.api.errors import check_id, internal_error, not_found
from cinema_api.core.database import get_db
from cinema_api.core.errors import InvalidReferenceError, NotFoundError
from cinema_api.core.security import get_current_user
from cinema_api.models.schemas import MovieIn, MovieOut, MovieUpdate
from cinema_api.services.movies import MovieService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/movies", tags=["Movies"],
                   dependencies=[Depends(get_current_user)])


@router.get("", response_model=List[MovieOut])
def list_movies(db: Session = Depends(get_db)):
    try:
        return MovieService(db).list_movies()
    except Exception as e:
        internal_error(e, "An error occurred while retrieving movies.")


@router.get("/{id}", response_model=MovieOut, name="get_movie")
def get_movie(id: int, db: Session = Depends(get_db)):
    check_id(id, "movie")
    try:
        movie = MovieService(db).get_movie(id)
    except Exception as e:
        internal_error(e, "An error occurred while retrieving the movie.", movie_id=id)
    if movie is None:
        not_found(f"Movie with id {id} not found.")
    return movie


@router.post("", response_model=MovieOut, status_code=status.HTTP_201_CREATED)
def create_movie(data: MovieIn, request: Request, response: Response,
                 db: Session = Depends(get_db)):
    try:
        movie = MovieService(db).create_movie(data)
    except InvalidReferenceError as e:
        logger.warning("Movie rejected", extra={"title": data.title, "reason": str(e)})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        internal_error(e, "An internal error occurred while creating the movie.", title=data.title)
    response.headers["Location"] = str(request.url_for("get_movie", id=movie.id))
    return movie


@router.put("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def update_movie(id: int, data: MovieUpdate, db: Session = Depends(get_db)):
    check_id(id, "movie")
    if data.id != id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The ID in the URL does not match the ID in the request body.",
        )
    try:
        MovieService(db).update_movie(id, data)
    except NotFoundError as e:
        not_found(str(e))
    except InvalidReferenceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        internal_error(e, "An internal error occurred while updating the movie.", movie_id=id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_movie(id: int, db: Session = Depends(get_db)):
    check_id(id, "movie")
    try:
        deleted = MovieService(db).delete_movie(id)
    except Exception as e:
        internal_error(e, "An internal error occurred while deleting the movie.", movie_id=id)
    if not deleted:
        not_found(f"Movie with id {id} not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
