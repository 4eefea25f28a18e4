"""Pydantic schemas for tour endpoints. JSON uses camelCase field names."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from app.models.tour import Difficulty


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TourCreate(_CamelModel):
    name: str = Field(min_length=10, max_length=40)
    duration: int = Field(gt=0)
    max_group_size: int = Field(gt=0)
    difficulty: Difficulty
    ratings_average: float = Field(default=4.5, ge=1, le=5)
    ratings_quantity: int = Field(default=0, ge=0)
    price: float = Field(gt=0)
    price_discount: float | None = None
    summary: str = Field(min_length=1)
    description: str | None = None
    image_cover: str = Field(min_length=1)
    secret_tour: bool = False

    @model_validator(mode="after")
    def check_discount(self) -> "TourCreate":
        if self.price_discount is not None and self.price_discount >= self.price:
            raise ValueError(f"Discount price ({self.price_discount}) must be below regular price")
        return self


class TourUpdate(_CamelModel):
    name: str | None = Field(default=None, min_length=10, max_length=40)
    duration: int | None = Field(default=None, gt=0)
    max_group_size: int | None = Field(default=None, gt=0)
    difficulty: Difficulty | None = None
    ratings_average: float | None = Field(default=None, ge=1, le=5)
    ratings_quantity: int | None = Field(default=None, ge=0)
    price: float | None = Field(default=None, gt=0)
    price_discount: float | None = None
    summary: str | None = None
    description: str | None = None
    image_cover: str | None = None
    secret_tour: bool | None = None


class TourResponse(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    name: str
    slug: str
    duration: int
    duration_weeks: float
    max_group_size: int
    difficulty: Difficulty
    ratings_average: float
    ratings_quantity: int
    price: float
    price_discount: float | None = None
    summary: str
    description: str | None = None
    image_cover: str
    created_at: datetime
