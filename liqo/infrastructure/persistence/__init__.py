"""Persistence adapters."""

from .repositories_sqlalchemy import SQLAlchemyMembershipStore, init_models

__all__ = ["SQLAlchemyMembershipStore", "init_models"]
