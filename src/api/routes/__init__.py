"""API route modules."""

from .config import router as config_router
from .events import router as events_router
from .health import router as health_router
from .orders import router as orders_router
from .schedule import router as schedule_router

__all__ = [
    "config_router",
    "events_router",
    "health_router",
    "orders_router",
    "schedule_router",
]
