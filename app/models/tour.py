"""Tour model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text

from app.database import Base


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    DIFFICULT = "difficult"


class Tour(Base):
    """Bookable tour. Secret tours are hidden from every read."""

    __tablename__ = "tour"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(40), unique=True, nullable=False)
    slug = Column(String(64), nullable=False, index=True)
    duration = Column(Integer, nullable=False)
    max_group_size = Column(Integer, nullable=False)
    difficulty = Column(String(16), nullable=False)
    ratings_average = Column(Float, nullable=False, default=4.5)
    ratings_quantity = Column(Integer, nullable=False, default=0)
    price = Column(Float, nullable=False)
    price_discount = Column(Float, nullable=True)
    summary = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    image_cover = Column(String(256), nullable=False)
    secret_tour = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def duration_weeks(self) -> float:
        return self.duration / 7
