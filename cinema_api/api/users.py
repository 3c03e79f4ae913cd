from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session
from typing import List
import logging

from cinema_api.api.errors import check_id, internal_error, not_found
from cinema_api.core.database import get_db
from cinema_api.core.errors import ConflictError, NotFoundError
from cinema_api.core.security import ADMIN_ROLE, require_roles
from cinema_api.models.schemas import RegisterIn, UserOut, UserUpdate
from cinema_api.services.users import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"],
                   dependencies=[require_roles(ADMIN_ROLE)])


@router.get("", response_model=List[UserOut])
def list_users(db: Session = Depends(get_db)):
    try:
        return UserService(db).list_users()
    except Exception as e:
        internal_error(e, "An error occurred while retrieving users.")


@router.get("/{id}", response_model=UserOut, name="get_user")
def get_user(id: int, db: Session = Depends(get_db)):
    check_id(id, "user")
    try:
        user = UserService(db).get_user(id)
    except Exception as e:
        internal_error(e, "An error occurred while retrieving the user.", user_id=id)
    if user is None:
        not_found(f"User with id {id} not found.")
    return user


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(data: RegisterIn, request: Request, response: Response,
                db: Session = Depends(get_db)):
    try:
        user = UserService(db).create_user(data)
    except ConflictError as e:
        logger.warning("User rejected", extra={"username": data.username, "reason": str(e)})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        internal_error(e, "An internal error occurred while creating the user.", username=data.username)
    response.headers["Location"] = str(request.url_for("get_user", id=user.id))
    return user


@router.put("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def update_user(id: int, data: UserUpdate, db: Session = Depends(get_db)):
    # role and is_active changes apply to tokens issued from now on
    check_id(id, "user")
    try:
        UserService(db).update_user(id, data)
    except NotFoundError as e:
        not_found(str(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        internal_error(e, "An internal error occurred while updating the user.", user_id=id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(id: int, db: Session = Depends(get_db)):
    check_id(id, "user")
    try:
        deleted = UserService(db).delete_user(id)
    except Exception as e:
        internal_error(e, "An internal error occurred while deleting the user.", user_id=id)
    if not deleted:
        not_found(f"User with id {id} not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
