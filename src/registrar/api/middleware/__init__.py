"""API middleware package."""

from src.registrar.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
