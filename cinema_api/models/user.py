from sqlalchemy import Boolean, Column, Integer, String
from cinema_api.core.database import Base


class User(Base):
    __tablename__ = "users"

    id            = Column(Integer, primary_key=True, index=True)
    username      = Column(String(20), unique=True, index=True, nullable=False)
    email         = Column(String(30), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role          = Column(String(20), nullable=False, default="User", server_default="User")
    is_active     = Column(Boolean, nullable=False, default=True, server_default="1")

    def __repr__(self) -> str:
        # never render password_hash
        return f"<User id={self.id} username={self.username!r} role={self.role!r}>"
