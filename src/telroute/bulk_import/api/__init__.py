"""API layer for bulk import."""

from .router import router

__all__ = ["router"]
