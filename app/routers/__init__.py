"""API routers."""

from app.routers.user import router as user_router

__all__ = ["user_router"]
