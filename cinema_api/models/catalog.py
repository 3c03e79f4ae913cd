from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from cinema_api.core.database import Base


class Director(Base):
    __tablename__ = "directors"

    id      = Column(Integer, primary_key=True)
    name    = Column(String(30), nullable=False)
    surname = Column(String(25), nullable=False)

    movies = relationship("Movie", back_populates="director")


class Movie(Base):
    __tablename__ = "movies"

    id           = Column(Integer, primary_key=True)
    title        = Column(String(50), nullable=False)
    description  = Column(String(250), nullable=True)
    release_date = Column(DateTime(timezone=True), nullable=False)
    genre        = Column(String(25), nullable=True)
    director_id  = Column(
        Integer,
        ForeignKey("directors.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    director = relationship("Director", back_populates="movies")
