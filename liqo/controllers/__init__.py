"""FastAPI routers acting as controllers."""

from . import groups, imports, mentees

__all__ = ["groups", "imports", "mentees"]
