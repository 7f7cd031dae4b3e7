"""
API route modules.
"""

from .feeds import router as feeds_router
from .groups import router as groups_router
from .misc import router as misc_router

__all__ = [
    "feeds_router",
    "groups_router",
    "misc_router",
]
