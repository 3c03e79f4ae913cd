from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session
from typing import List
import logging

from cinema_api.api.errors import check_id, internal_error, not_found
from cinema_api.core.database import get_db
from cinema_api.core.errors import NotFoundError
from cinema_api.core.security import get_current_user
from cinema_api.models.schemas import DirectorIn, DirectorOut, DirectorUpdate
from cinema_api.services.directors import DirectorService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/directors", tags=["Directors"],
                   dependencies=[Depends(get_current_user)])


@router.get("", response_model=List[DirectorOut])
def list_directors(db: Session = Depends(get_db)):
    try:
        return DirectorService(db).list_directors()
    except Exception as e:
        internal_error(e, "An error occurred while retrieving directors.")


@router.get("/{id}", response_model=DirectorOut, name="get_director")
def get_director(id: int, db: Session = Depends(get_db)):
    check_id(id, "director")
    try:
        director = DirectorService(db).get_director(id)
    except Exception as e:
        internal_error(e, "An error occurred while retrieving the director.", director_id=id)
    if director is None:
        not_found(f"Director with id {id} not found.")
    return director


@router.post("", response_model=DirectorOut, status_code=status.HTTP_201_CREATED)
def create_director(data: DirectorIn, request: Request, response: Response,
                    db: Session = Depends(get_db)):
    try:
        director = DirectorService(db).create_director(data)
    except Exception as e:
        internal_error(e, "An internal error occurred while creating the director.")
    response.headers["Location"] = str(request.url_for("get_director", id=director.id))
    return director


@router.put("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def update_director(id: int, data: DirectorUpdate, db: Session = Depends(get_db)):
    check_id(id, "director")
    if data.id != id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The ID in the URL does not match the ID in the request body.",
        )
    try:
        DirectorService(db).update_director(id, data)
    except NotFoundError as e:
        not_found(str(e))
    except Exception as e:
        internal_error(e, "An internal error occurred while updating the director.", director_id=id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_director(id: int, db: Session = Depends(get_db)):
    check_id(id, "director")
    try:
        deleted = DirectorService(db).delete_director(id)
    except Exception as e:
        internal_error(e, "An internal error occurred while deleting the director.", director_id=id)
    if not deleted:
        not_found(f"Director with id {id} not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
