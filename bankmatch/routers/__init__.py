"""API routers package."""

from bankmatch.routers import banking

__all__ = ["banking"]
