"""Middleware for Cloud Storage."""

from services.cloud_storage.app.middleware.correlation import CorrelationMiddleware

__all__ = ["CorrelationMiddleware"]
