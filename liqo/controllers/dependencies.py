"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from liqo.application.interfaces import MembershipStoreInterface
from liqo.application.use_cases import (
    GroupImportProcessor,
    GroupLifecycleManager,
    MembershipReconciler,
)
from liqo.config.settings import settings
from liqo.database import get_session
from liqo.infrastructure.persistence import SQLAlchemyMembershipStore
from liqo.models.user import User as UserModel, UserRole
from liqo.utils import AuthenticationError, decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
SessionDep = Annotated[AsyncSession, Depends(get_session)]

ADMIN_ROLES = frozenset({UserRole.SUPERADMIN, UserRole.ADMIN})


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: SessionDep,
) -> UserModel:
    """Resolve and validate the user referenced by the bearer token."""

    try:
        payload = decode_access_token(token)
        user_id = int(payload.sub)
    except (AuthenticationError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from None

    result = await session.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user


CurrentUserDep = Annotated[UserModel, Depends(get_current_user)]


async def require_admin(current_user: CurrentUserDep) -> UserModel:
    """Only administrators manage groups and memberships."""

    if current_user.role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can manage groups",
        )
    return current_user


AdminDep = Annotated[UserModel, Depends(require_admin)]


def get_membership_store(session: SessionDep) -> MembershipStoreInterface:
    return SQLAlchemyMembershipStore(session)


StoreDep = Annotated[MembershipStoreInterface, Depends(get_membership_store)]


def get_reconciler(store: StoreDep) -> MembershipReconciler:
    return MembershipReconciler(store)


ReconcilerDep = Annotated[MembershipReconciler, Depends(get_reconciler)]


def get_lifecycle_manager(
    store: StoreDep,
    reconciler: ReconcilerDep,
) -> GroupLifecycleManager:
    return GroupLifecycleManager(store, reconciler)


LifecycleDep = Annotated[GroupLifecycleManager, Depends(get_lifecycle_manager)]


def get_import_processor(store: StoreDep) -> GroupImportProcessor:
    return GroupImportProcessor(store, max_rows=settings.imports.max_rows)


ImportProcessorDep = Annotated[GroupImportProcessor, Depends(get_import_processor)]


__all__ = [
    "AdminDep",
    "CurrentUserDep",
    "ImportProcessorDep",
    "LifecycleDep",
    "ReconcilerDep",
    "SessionDep",
    "StoreDep",
    "get_current_user",
    "get_import_processor",
    "get_lifecycle_manager",
    "get_membership_store",
    "get_reconciler",
    "oauth2_scheme",
    "require_admin",
]
