from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from cinema_api.core.errors import ConflictError, NotFoundError
from cinema_api.core.security import get_password_hash
from cinema_api.models.schemas import RegisterIn, UserUpdate
from cinema_api.models.user import User
from cinema_api.services.repository import Repository

logger = logging.getLogger(__name__)


class UserService:
    """Credential store: user records with unique usernames and emails."""

    def __init__(self, db: Session):
        self.users = Repository(db, User)

    def list_users(self) -> List[User]:
        return self.users.list_all()

    def get_user(self, id: int) -> Optional[User]:
        return self.users.get_by_id(id)

    def find_by_username(self, username: str) -> Optional[User]:
        return self.users.find_by(username=username)

    def _check_unique(self, username: str, email: str, exclude_id: Optional[int] = None) -> None:
        existing = self.users.find_by(username=username)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError("Username already exists")
        existing = self.users.find_by(email=email)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError("Email already exists")

    def create_user(self, data: RegisterIn) -> User:
        self._check_unique(data.username, data.email)
        user = User(
            username=data.username,
            email=data.email,
            password_hash=get_password_hash(data.password),
            role=data.role,
            is_active=True,
        )
        self.users.insert(user)
        try:
            self.users.save()
        except IntegrityError as e:
            # lost a race against a concurrent insert of the same username/email
            raise ConflictError("Username or email already exists") from e
        self.users.refresh(user)
        logger.info("User created", extra={"user_id": user.id, "username": user.username})
        return user

    def update_user(self, id: int, data: UserUpdate) -> User:
        user = self.users.get_by_id(id)
        if user is None:
            logger.warning("User not found for update", extra={"user_id": id})
            raise NotFoundError(f"User with id {id} not found.")
        self._check_unique(data.username, data.email, exclude_id=id)

        user.username = data.username
        user.email = data.email
        if data.password:
            user.password_hash = get_password_hash(data.password)
        user.role = data.role
        user.is_active = data.is_active

        self.users.update(user)
        try:
            self.users.save()
        except IntegrityError as e:
            raise ConflictError("Username or email already exists") from e
        logger.info("User updated", extra={"user_id": id})
        return user

    def delete_user(self, id: int) -> bool:
        if not self.users.delete(id):
            logger.warning("User not found for deletion", extra={"user_id": id})
            return False
        self.users.save()
        logger.info("User deleted", extra={"user_id": id})
        return True
