"""API routers."""

from app.routers.auth import router as auth_router
from app.routers.tours import router as tours_router

__all__ = ["auth_router", "tours_router"]
