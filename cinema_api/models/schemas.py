from pydantic import BaseModel, ConfigDict, EmailStr, constr, field_validator
from datetime import datetime
from typing import Literal, Optional


EMAIL_MAX_LENGTH = 30

Role = Literal["User", "Admin"]


def _check_email_length(v: str) -> str:
    if len(v) > EMAIL_MAX_LENGTH:
        raise ValueError(f"Email address must be at most {EMAIL_MAX_LENGTH} characters")
    return v


class LoginIn(BaseModel):
    username: constr(min_length=1)
    password: constr(min_length=1)


class RegisterIn(BaseModel):
    username: constr(min_length=1, max_length=20)
    email: EmailStr
    password: constr(min_length=1)
    role: Role = "User"

    @field_validator("email")
    def valid_email(cls, v) -> str:
        return _check_email_length(v)


class UserUpdate(BaseModel):
    username: constr(min_length=1, max_length=20)
    email: EmailStr
    password: Optional[constr(min_length=1)] = None
    role: Role = "User"
    is_active: bool = True

    @field_validator("email")
    def valid_email(cls, v) -> str:
        return _check_email_length(v)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: str
    is_active: bool


class CurrentUser(BaseModel):
    id: int
    username: str
    email: str
    role: str
    jti: str


class TokenOut(BaseModel):
    token: str


class MessageOut(BaseModel):
    message: str


class DirectorIn(BaseModel):
    name: constr(min_length=1, max_length=30)
    surname: constr(min_length=1, max_length=25)


class DirectorUpdate(DirectorIn):
    id: int


class DirectorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    surname: str


class MovieIn(BaseModel):
    title: constr(min_length=1, max_length=50)
    description: Optional[constr(max_length=250)] = None
    release_date: datetime
    genre: Optional[constr(max_length=25)] = None
    director_id: int


class MovieUpdate(MovieIn):
    id: int


class MovieOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    release_date: datetime
    genre: Optional[str] = None
    director_id: Optional[int] = None
