"""
Routes module - contains all API route handlers
"""

from .conveyor import router as conveyor_router
from .scripts import router as scripts_router

__all__ = [
    "conveyor_router",
    "scripts_router",
]
