from typing import List

from fastapi import APIRouter

from .chat import router as chat_router
from .health import router as health_router

v1_routes: List[APIRouter] = [
    chat_router,
    health_router,
]

__all__ = ["chat_router", "health_router", "v1_routes"]
