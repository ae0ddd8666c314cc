"""HTTP middleware for the VaaniAI API."""

from .profiling import ProfilingMiddleware

__all__ = ["ProfilingMiddleware"]
