"""API v1 routers."""

from . import cache, jobs, providers

__all__ = ["cache", "jobs", "providers"]
