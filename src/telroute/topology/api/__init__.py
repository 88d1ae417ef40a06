"""API layer for the routing topology.

Provides FastAPI endpoints for node management, port assignment,
Frame layouts and the settings-backed catalogs.
"""

from .router import router

__all__ = ["router"]
