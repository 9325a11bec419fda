"""Route handlers for the web API."""

from coursegen.web.routes.health import router as health_router
from coursegen.web.routes.outlines import router as outlines_router
from coursegen.web.routes.usage import router as usage_router

__all__ = [
    "health_router",
    "outlines_router",
    "usage_router",
]
