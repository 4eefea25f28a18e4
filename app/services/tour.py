"""Tour service: CRUD plus query-string filtering, sorting, field selection and paging."""

import operator
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Query, Session

from app.errors import NotFound, ValidationError
from app.models.tour import Tour
from app.schemas.tour import TourCreate, TourResponse, TourUpdate

# Public (camelCase) name -> column usable in filters and sorts
QUERYABLE_FIELDS = {
    "name": Tour.name,
    "slug": Tour.slug,
    "duration": Tour.duration,
    "maxGroupSize": Tour.max_group_size,
    "difficulty": Tour.difficulty,
    "ratingsAverage": Tour.ratings_average,
    "ratingsQuantity": Tour.ratings_quantity,
    "price": Tour.price,
    "priceDiscount": Tour.price_discount,
    "createdAt": Tour.created_at,
}
RESERVED_PARAMS = {"page", "sort", "limit", "fields"}
OPERATORS = {"gte": operator.ge, "gt": operator.gt, "lte": operator.le, "lt": operator.lt}
DEFAULT_LIMIT = 100

_FILTER_KEY = re.compile(r"^(?P<field>\w+)(?:\[(?P<op>\w+)\])?$")
_TOUR_NOT_FOUND = "No tour found with that ID"


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _resolve_field(name: str):
    column = QUERYABLE_FIELDS.get(name) or QUERYABLE_FIELDS.get(_to_camel(name))
    if column is None:
        raise ValidationError(f"Unknown field '{name}'")
    return column


def _coerce(column, raw: str) -> Any:
    python_type = column.expression.type.python_type
    try:
        if python_type is datetime:
            return datetime.fromisoformat(raw)
        return python_type(raw)
    except ValueError:
        raise ValidationError(f"Invalid value '{raw}' for {column.key}") from None


def _positive_int(params: Mapping[str, str], key: str, default: int) -> int:
    raw = params.get(key)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"'{key}' must be a positive integer") from None
    if value < 1:
        raise ValidationError(f"'{key}' must be a positive integer")
    return value


class TourService:
    """Handles tour queries and CRUD. Secret tours are invisible to every operation."""

    def _visible(self, db: Session) -> Query:
        return db.query(Tour).filter(Tour.secret_tour.is_(False))

    def apply_filters(self, query: Query, params: Mapping[str, str]) -> Query:
        """Apply ``field=value`` and ``field[op]=value`` params; op is one of gte, gt, lte, lt."""
        for key, raw in params.items():
            if key in RESERVED_PARAMS:
                continue
            match = _FILTER_KEY.match(key)
            if not match:
                raise ValidationError(f"Invalid filter '{key}'")
            column = _resolve_field(match["field"])
            value = _coerce(column, raw)
            op = match["op"]
            if op is None:
                query = query.filter(column == value)
            elif op in OPERATORS:
                query = query.filter(OPERATORS[op](column, value))
            else:
                raise ValidationError(f"Unsupported operator '{op}'")
        return query

    def apply_sort(self, query: Query, sort: str | None) -> Query:
        """``sort=-ratingsAverage,price``; newest first when absent."""
        if not sort:
            return query.order_by(Tour.created_at.desc(), Tour.id.desc())
        for part in (p.strip() for p in sort.split(",")):
            if not part:
                continue
            descending = part.startswith("-")
            column = _resolve_field(part.lstrip("-"))
            query = query.order_by(column.desc() if descending else column.asc())
        return query.order_by(Tour.id.asc())

    def list_tours(self, db: Session, params: Mapping[str, str]) -> list[dict]:
        """Run a list query from query-string params and serialize the selected fields."""
        query = self.apply_filters(self._visible(db), params)
        query = self.apply_sort(query, params.get("sort"))

        page = _positive_int(params, "page", 1)
        limit = _positive_int(params, "limit", DEFAULT_LIMIT)
        tours = query.offset((page - 1) * limit).limit(limit).all()

        include = None
        if params.get("fields"):
            include = {"id"}
            for name in (f.strip() for f in params["fields"].split(",")):
                if not name:
                    continue
                snake = re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()
                if snake not in TourResponse.model_fields:
                    raise ValidationError(f"Unknown field '{name}'")
                include.add(snake)

        return [TourResponse.model_validate(t).model_dump(mode="json", by_alias=True, include=include) for t in tours]

    def get_tour(self, db: Session, tour_id: int) -> Tour:
        tour = self._visible(db).filter(Tour.id == tour_id).first()
        if not tour:
            raise NotFound(_TOUR_NOT_FOUND)
        return tour

    def create_tour(self, db: Session, data: TourCreate) -> Tour:
        if db.query(Tour).filter(Tour.name == data.name).first():
            raise ValidationError(f"A tour named '{data.name}' already exists")
        tour = Tour(**data.model_dump(mode="json"), slug=slugify(data.name))
        db.add(tour)
        db.commit()
        db.refresh(tour)
        return tour

    def update_tour(self, db: Session, tour_id: int, data: TourUpdate) -> Tour:
        tour = self.get_tour(db, tour_id)
        changes = data.model_dump(mode="json", exclude_unset=True)
        for field, value in changes.items():
            if value is None and field not in ("price_discount", "description"):
                raise ValidationError(f"'{_to_camel(field)}' cannot be null")

        name = changes.get("name")
        if name and name != tour.name and db.query(Tour).filter(Tour.name == name).first():
            raise ValidationError(f"A tour named '{name}' already exists")

        price = changes.get("price", tour.price)
        discount = changes.get("price_discount", tour.price_discount)
        if discount is not None and discount >= price:
            raise ValidationError(f"Discount price ({discount}) must be below regular price")

        for field, value in changes.items():
            setattr(tour, field, value)
        if "name" in changes:
            tour.slug = slugify(tour.name)
        db.commit()
        db.refresh(tour)
        return tour

    def delete_tour(self, db: Session, tour_id: int) -> None:
        tour = self.get_tour(db, tour_id)
        db.delete(tour)
        db.commit()


_tour_service: TourService | None = None


def get_tour_service() -> TourService:
    """Get singleton tour service instance."""
    global _tour_service
    if _tour_service is None:
        _tour_service = TourService()
    return _tour_service
