"""API route aggregation.

All routers registered here get mounted in main.py. The page routes
(/, /script.js, /socket) live at the root because the rendered page
refers to them by absolute path; JSON routes live under /api/v1.
"""

from fastapi import APIRouter

from playground.api.health import router as health_router
from playground.api.playground import router as playground_router
from playground.api.sessions import router as sessions_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health_router, tags=["health"])
api_router.include_router(sessions_router, tags=["sessions"])

page_router = APIRouter()
page_router.include_router(playground_router, tags=["playground"])
