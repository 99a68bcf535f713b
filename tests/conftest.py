"""Shared fixtures: an in-memory SQLite store and record factories."""

from __future__ import annotations

import os
from typing import Callable, Iterable, Optional

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from liqo.application.use_cases import (
    GroupImportProcessor,
    GroupLifecycleManager,
    MembershipReconciler,
)
from liqo.domain.errors import StoreUnavailableError
from liqo.infrastructure.persistence import SQLAlchemyMembershipStore
from liqo.models import Base, Gender, Group, Mentee, User, UserRole


class Seeder:
    """Writes fixture rows straight through the ORM."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._counter = 0

    async def _save(self, record):
        self.session.add(record)
        await self.session.commit()
        return record

    async def admin(self, role: UserRole = UserRole.ADMIN) -> User:
        self._counter += 1
        return await self._save(
            User(email=f"admin{self._counter}@liqo.id", full_name="Admin", role=role)
        )

    async def mentor(
        self,
        full_name: Optional[str],
        gender: Optional[Gender],
        email: Optional[str] = None,
    ) -> User:
        self._counter += 1
        return await self._save(
            User(
                email=email or f"mentor{self._counter}@liqo.id",
                full_name=full_name,
                gender=gender,
                role=UserRole.MENTOR,
            )
        )

    async def mentee(
        self,
        full_name: str,
        gender: Gender,
        group: Optional[Group] = None,
    ) -> Mentee:
        return await self._save(
            Mentee(
                full_name=full_name,
                gender=gender,
                group_id=group.id if group else None,
            )
        )

    async def group(
        self,
        name: str,
        mentor: Optional[User] = None,
        gender: Optional[Gender] = None,
        mentees: Iterable[Mentee] = (),
    ) -> Group:
        group = await self._save(
            Group(
                name=name,
                mentor_id=mentor.id if mentor else None,
                gender=gender or (mentor.gender if mentor else None),
            )
        )
        members = list(mentees)
        for mentee in members:
            mentee.group_id = group.id
        if members:
            await self.session.commit()
        return group



class FlakyStore:
    """Wraps a store so one method raises ``StoreUnavailableError`` on chosen calls.

    ``should_fail`` receives the 1-based call number and the call arguments.
    """

    def __init__(self, store, method: str, should_fail: Callable[..., bool]):
        self._store = store
        self._method = method
        self._should_fail = should_fail
        self.calls = 0

    def __getattr__(self, name):
        attribute = getattr(self._store, name)
        if name != self._method:
            return attribute

        async def call(*args, **kwargs):
            self.calls += 1
            if self._should_fail(self.calls, *args, **kwargs):
                raise StoreUnavailableError()
            return await attribute(*args, **kwargs)

        return call


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with factory() as session:
        yield session


@pytest.fixture
def seed(session) -> Seeder:
    return Seeder(session)


@pytest.fixture
def store(session) -> SQLAlchemyMembershipStore:
    return SQLAlchemyMembershipStore(session)


@pytest.fixture
def reconciler(store) -> MembershipReconciler:
    return MembershipReconciler(store)


@pytest.fixture
def lifecycle(store, reconciler) -> GroupLifecycleManager:
    return GroupLifecycleManager(store, reconciler)


@pytest.fixture
def importer(store) -> GroupImportProcessor:
    return GroupImportProcessor(store, max_rows=500)


@pytest.fixture
def flaky_store(store) -> Callable[..., FlakyStore]:
    def make(method: str, should_fail: Callable[..., bool]) -> FlakyStore:
        return FlakyStore(store, method, should_fail)

    return make
