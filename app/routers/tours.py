"""Tour API endpoints."""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import CurrentUser, get_current_user, restrict_to
from app.models.tour import Tour
from app.models.user import Role
from app.schemas.tour import TourCreate, TourResponse, TourUpdate
from app.services.tour import get_tour_service

router = APIRouter(prefix="/api/v1/tours", tags=["Tours"])

TOUR_MANAGERS = {Role.ADMIN, Role.LEAD_GUIDE}
TOP_TOURS_QUERY = {
    "limit": "5",
    "sort": "-ratingsAverage,price",
    "fields": "name,price,ratingsAverage,summary,difficulty",
}


def _tour_payload(tour: Tour) -> dict:
    data = TourResponse.model_validate(tour).model_dump(mode="json", by_alias=True)
    return {"status": "success", "data": {"tour": data}}


def _tour_list_payload(tours: list[dict]) -> dict:
    return {"status": "success", "results": len(tours), "data": {"tours": tours}}


@router.get("")
def list_tours(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """List tours. Supports filters (``price[lt]=500``), ``sort``, ``fields``, ``page`` and ``limit``."""
    tours = get_tour_service().list_tours(db, request.query_params)
    return _tour_list_payload(tours)


@router.get("/top-5-cheap")
def top_tours(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Best rated tours, cheapest first among equals."""
    tours = get_tour_service().list_tours(db, TOP_TOURS_QUERY)
    return _tour_list_payload(tours)


@router.get("/{tour_id}")
def get_tour(tour_id: int, db: Session = Depends(get_db)) -> dict:
    """Get a single tour by ID."""
    return _tour_payload(get_tour_service().get_tour(db, tour_id))


@router.post("", status_code=201)
def create_tour(
    body: TourCreate,
    user: CurrentUser = Depends(restrict_to(TOUR_MANAGERS)),
    db: Session = Depends(get_db),
) -> dict:
    """Create a tour."""
    return _tour_payload(get_tour_service().create_tour(db, body))


@router.patch("/{tour_id}")
def update_tour(
    tour_id: int,
    body: TourUpdate,
    user: CurrentUser = Depends(restrict_to(TOUR_MANAGERS)),
    db: Session = Depends(get_db),
) -> dict:
    """Update fields of a tour."""
    return _tour_payload(get_tour_service().update_tour(db, tour_id, body))


@router.delete("/{tour_id}", status_code=204)
def delete_tour(
    tour_id: int,
    user: CurrentUser = Depends(restrict_to(TOUR_MANAGERS)),
    db: Session = Depends(get_db),
) -> Response:
    """Delete a tour."""
    get_tour_service().delete_tour(db, tour_id)
    return Response(status_code=204)
