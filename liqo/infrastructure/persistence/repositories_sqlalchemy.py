"""SQLAlchemy implementation of the membership store."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from liqo.application.interfaces import MembershipStoreInterface
from liqo.domain.errors import (
    MembershipValidationError,
    NotFoundError,
    StoreUnavailableError,
)
from liqo.domain.models import (
    GroupChanges,
    GroupDraft,
    GroupFilters,
    GroupRecord,
    GroupStatistics,
    HistoryEntry,
    MenteeRecord,
    MentorHistoryEntry,
    MentorRecord,
    Page,
)
from liqo.models import (
    Base,
    Gender,
    Group,
    GroupMentorHistory,
    Mentee,
    MenteeGroupHistory,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return a naive UTC timestamp for persistence."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_group_record(group: Group, mentees_count: int) -> GroupRecord:
    return GroupRecord(
        id=group.id,
        name=group.name,
        description=group.description,
        mentor_id=group.mentor_id,
        mentor_name=group.mentor.full_name if group.mentor else None,
        gender=group.gender,
        mentees_count=mentees_count or 0,
        deleted_at=group.deleted_at,
        created_at=group.created_at,
        updated_at=group.updated_at,
    )


class SQLAlchemyMembershipStore(MembershipStoreInterface):
    """Membership store backed by an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[None]:
        """Commit on success; roll back and translate failures otherwise."""

        try:
            yield
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.warning("Integrity failure during %s: %s", operation, exc.orig)
            raise MembershipValidationError.single(
                "store",
                "Unable to save changes: the data violates a store constraint",
            ) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Store failure during %s", operation)
            raise StoreUnavailableError() from exc
        except Exception:
            await self.session.rollback()
            raise

    @asynccontextmanager
    async def _read(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Store failure during %s", operation)
            raise StoreUnavailableError() from exc

    @staticmethod
    def _group_query():
        mentees_count = (
            select(func.count(Mentee.id))
            .where(Mentee.group_id == Group.id, Mentee.deleted_at.is_(None))
            .correlate(Group)
            .scalar_subquery()
        )
        return select(Group, mentees_count.label("mentees_count")).execution_options(
            populate_existing=True
        )

    async def _fetch_group(
        self,
        group_id: int,
        include_trashed: bool = True,
    ) -> Optional[GroupRecord]:
        query = self._group_query().where(Group.id == group_id)
        if not include_trashed:
            query = query.where(Group.deleted_at.is_(None))
        row = (await self.session.execute(query)).first()
        if row is None:
            return None
        group, mentees_count = row
        return _to_group_record(group, mentees_count)

    async def _load_group_entity(self, group_id: int) -> Group:
        group = await self.session.get(Group, group_id)
        if group is None:
            raise NotFoundError("Group", group_id)
        return group

    async def _reassign(
        self,
        mentee_ids: Iterable[int],
        to_group_id: Optional[int],
        only_from: Optional[int] = None,
    ) -> int:
        """Point mentees at ``to_group_id`` and record one history row per change."""

        ids = list(dict.fromkeys(mentee_ids))
        if not ids:
            return 0

        query = select(Mentee.id, Mentee.group_id).where(
            Mentee.id.in_(ids),
            Mentee.deleted_at.is_(None),
        )
        if only_from is not None:
            query = query.where(Mentee.group_id == only_from)
        rows = (await self.session.execute(query)).all()
        changed = [(mentee_id, group_id) for mentee_id, group_id in rows if group_id != to_group_id]
        if not changed:
            return 0

        moved_at = _utcnow()
        self.session.add_all(
            [
                MenteeGroupHistory(
                    mentee_id=mentee_id,
                    from_group_id=from_group_id,
                    to_group_id=to_group_id,
                    moved_at=moved_at,
                )
                for mentee_id, from_group_id in changed
            ]
        )
        await self.session.execute(
            update(Mentee)
            .where(Mentee.id.in_([mentee_id for mentee_id, _ in changed]))
            .values(group_id=to_group_id)
            .execution_options(synchronize_session="fetch")
        )
        return len(changed)

    async def _release_trashed_mentees(self, group_id: int) -> None:
        # Trashed mentees are released without a history row.
        await self.session.execute(
            update(Mentee)
            .where(Mentee.group_id == group_id, Mentee.deleted_at.is_not(None))
            .values(group_id=None)
            .execution_options(synchronize_session="fetch")
        )

    # Groups

    async def list_groups(
        self,
        filters: GroupFilters,
        page: int = 1,
        per_page: int = 10,
    ) -> Page[GroupRecord]:
        conditions = [
            Group.deleted_at.is_not(None) if filters.trashed else Group.deleted_at.is_(None)
        ]
        if filters.search:
            pattern = f"%{filters.search.strip().lower()}%"
            conditions.append(
                or_(
                    func.lower(Group.name).like(pattern),
                    func.lower(Group.description).like(pattern),
                    func.lower(User.full_name).like(pattern),
                )
            )
        if filters.gender is not None:
            conditions.append(Group.gender == filters.gender)

        page = max(page, 1)
        async with self._read("list_groups"):
            total = (
                await self.session.execute(
                    select(func.count(Group.id))
                    .select_from(Group)
                    .outerjoin(User, User.id == Group.mentor_id)
                    .where(and_(*conditions))
                )
            ).scalar_one()
            rows = (
                await self.session.execute(
                    self._group_query()
                    .outerjoin(User, User.id == Group.mentor_id)
                    .where(and_(*conditions))
                    .order_by(Group.id)
                    .offset((page - 1) * per_page)
                    .limit(per_page)
                )
            ).all()

        return Page[GroupRecord](
            items=[_to_group_record(group, count) for group, count in rows],
            current_page=page,
            per_page=per_page,
            total=total,
        )

    async def get_group(
        self,
        group_id: int,
        include_trashed: bool = False,
    ) -> Optional[GroupRecord]:
        async with self._read("get_group"):
            return await self._fetch_group(group_id, include_trashed=include_trashed)

    async def find_active_group_by_name(self, name: str) -> Optional[GroupRecord]:
        async with self._read("find_active_group_by_name"):
            row = (
                await self.session.execute(
                    self._group_query()
                    .where(
                        func.lower(Group.name) == name.strip().lower(),
                        Group.deleted_at.is_(None),
                    )
                    .limit(1)
                )
            ).first()
        if row is None:
            return None
        group, mentees_count = row
        return _to_group_record(group, mentees_count)

    async def create_group(
        self,
        draft: GroupDraft,
        mentee_ids: Sequence[int] = (),
    ) -> GroupRecord:
        async with self._transaction("create_group"):
            group = Group(
                name=draft.name,
                description=draft.description,
                mentor_id=draft.mentor_id,
                gender=draft.gender,
            )
            self.session.add(group)
            await self.session.flush()
            moved = await self._reassign(mentee_ids, group.id)
            group_id = group.id

        logger.info("Created group %s with %d mentees", group_id, moved)
        async with self._read("create_group"):
            return await self._fetch_group(group_id)

    async def update_group(
        self,
        group_id: int,
        changes: GroupChanges,
    ) -> GroupRecord:
        async with self._transaction("update_group"):
            group = await self._load_group_entity(group_id)
            if changes.mentor_id is not None and changes.mentor_id != group.mentor_id:
                self.session.add(
                    GroupMentorHistory(
                        group_id=group.id,
                        from_mentor_id=group.mentor_id,
                        to_mentor_id=changes.mentor_id,
                        changed_at=_utcnow(),
                    )
                )
                group.mentor_id = changes.mentor_id
            if changes.name is not None:
                group.name = changes.name
            if changes.description is not None:
                group.description = changes.description or None
            if changes.gender is not None:
                group.gender = changes.gender

            if changes.mentee_ids is not None:
                desired = set(changes.mentee_ids)
                current = set(
                    (
                        await self.session.execute(
                            select(Mentee.id).where(
                                Mentee.group_id == group_id,
                                Mentee.deleted_at.is_(None),
                            )
                        )
                    ).scalars()
                )
                await self._reassign(sorted(current - desired), None, only_from=group_id)
                await self._reassign(changes.mentee_ids, group_id)
            group.updated_at = _utcnow()

        async with self._read("update_group"):
            return await self._fetch_group(group_id)

    async def soft_delete_group(self, group_id: int) -> Tuple[GroupRecord, int]:
        async with self._transaction("soft_delete_group"):
            group = await self._load_group_entity(group_id)
            group.deleted_at = _utcnow()
            member_ids = (
                await self.session.execute(
                    select(Mentee.id).where(
                        Mentee.group_id == group_id,
                        Mentee.deleted_at.is_(None),
                    )
                )
            ).scalars().all()
            detached = await self._reassign(member_ids, None, only_from=group_id)
            await self._release_trashed_mentees(group_id)

        async with self._read("soft_delete_group"):
            return await self._fetch_group(group_id), detached

    async def restore_group(self, group_id: int) -> GroupRecord:
        async with self._transaction("restore_group"):
            group = await self._load_group_entity(group_id)
            group.deleted_at = None

        async with self._read("restore_group"):
            return await self._fetch_group(group_id)

    async def force_delete_group(self, group_id: int) -> None:
        async with self._transaction("force_delete_group"):
            group = await self._load_group_entity(group_id)
            await self._release_trashed_mentees(group_id)
            await self.session.delete(group)

    async def group_statistics(self) -> GroupStatistics:
        async with self._read("group_statistics"):
            rows = (
                await self.session.execute(
                    select(Group.gender, func.count(Group.id))
                    .where(Group.deleted_at.is_(None))
                    .group_by(Group.gender)
                )
            ).all()
            trashed = (
                await self.session.execute(
                    select(func.count(Group.id)).where(Group.deleted_at.is_not(None))
                )
            ).scalar_one()

        by_gender = {gender: count for gender, count in rows}
        return GroupStatistics(
            total_groups=sum(by_gender.values()),
            ikhwan_groups=by_gender.get(Gender.IKHWAN, 0),
            akhwat_groups=by_gender.get(Gender.AKHWAT, 0),
            trashed_groups=trashed,
        )

    # Mentors

    async def list_available_mentors(self) -> List[MentorRecord]:
        occupied = select(Group.mentor_id).where(
            Group.deleted_at.is_(None),
            Group.mentor_id.is_not(None),
        )
        async with self._read("list_available_mentors"):
            mentors = (
                await self.session.execute(
                    select(User)
                    .where(
                        User.role == UserRole.MENTOR,
                        User.full_name.is_not(None),
                        User.gender.is_not(None),
                        User.id.not_in(occupied),
                    )
                    .order_by(User.full_name)
                )
            ).scalars().all()
        return [MentorRecord.model_validate(mentor) for mentor in mentors]

    async def get_mentor(self, mentor_id: int) -> Optional[MentorRecord]:
        async with self._read("get_mentor"):
            mentor = (
                await self.session.execute(
                    select(User).where(User.id == mentor_id, User.role == UserRole.MENTOR)
                )
            ).scalar_one_or_none()
        return MentorRecord.model_validate(mentor) if mentor else None

    async def get_mentor_gender(self, mentor_id: int) -> Optional[Gender]:
        mentor = await self.get_mentor(mentor_id)
        return mentor.gender if mentor else None

    async def find_mentor_by_email(self, email: str) -> Optional[MentorRecord]:
        async with self._read("find_mentor_by_email"):
            mentor = (
                await self.session.execute(
                    select(User).where(
                        func.lower(User.email) == email.strip().lower(),
                        User.role == UserRole.MENTOR,
                    )
                )
            ).scalar_one_or_none()
        return MentorRecord.model_validate(mentor) if mentor else None

    async def get_active_group_for_mentor(
        self,
        mentor_id: int,
        exclude_group_id: Optional[int] = None,
    ) -> Optional[GroupRecord]:
        query = self._group_query().where(
            Group.mentor_id == mentor_id,
            Group.deleted_at.is_(None),
        )
        if exclude_group_id is not None:
            query = query.where(Group.id != exclude_group_id)
        async with self._read("get_active_group_for_mentor"):
            row = (await self.session.execute(query.limit(1))).first()
        if row is None:
            return None
        group, mentees_count = row
        return _to_group_record(group, mentees_count)

    # Mentees

    async def list_available_mentees(
        self,
        mentor_id: int,
        include_occupied: bool = True,
    ) -> List[MenteeRecord]:
        gender = await self.get_mentor_gender(mentor_id)
        if gender is None:
            return []
        return await self.list_mentees_by_gender(gender, include_occupied=include_occupied)

    async def list_mentees_by_gender(
        self,
        gender: Gender,
        include_occupied: bool = True,
    ) -> List[MenteeRecord]:
        query = select(Mentee).where(
            Mentee.gender == gender,
            Mentee.deleted_at.is_(None),
        )
        if not include_occupied:
            query = query.where(Mentee.group_id.is_(None))
        async with self._read("list_mentees_by_gender"):
            mentees = (
                await self.session.execute(
                    query.order_by(Mentee.full_name).execution_options(populate_existing=True)
                )
            ).scalars().all()
        return [MenteeRecord.model_validate(mentee) for mentee in mentees]

    async def get_mentees(self, mentee_ids: Iterable[int]) -> List[MenteeRecord]:
        ids = list(dict.fromkeys(mentee_ids))
        if not ids:
            return []
        async with self._read("get_mentees"):
            mentees = (
                await self.session.execute(
                    select(Mentee)
                    .where(Mentee.id.in_(ids), Mentee.deleted_at.is_(None))
                    .execution_options(populate_existing=True)
                )
            ).scalars().all()
        by_id = {mentee.id: MenteeRecord.model_validate(mentee) for mentee in mentees}
        return [by_id[mentee_id] for mentee_id in ids if mentee_id in by_id]

    async def find_mentees_by_name(self, names: Iterable[str]) -> List[MenteeRecord]:
        lowered = {name.strip().lower() for name in names if name and name.strip()}
        if not lowered:
            return []
        async with self._read("find_mentees_by_name"):
            mentees = (
                await self.session.execute(
                    select(Mentee)
                    .where(
                        func.lower(Mentee.full_name).in_(lowered),
                        Mentee.deleted_at.is_(None),
                    )
                    .order_by(Mentee.id)
                    .execution_options(populate_existing=True)
                )
            ).scalars().all()
        return [MenteeRecord.model_validate(mentee) for mentee in mentees]

    async def list_group_mentees(self, group_id: int) -> List[MenteeRecord]:
        async with self._read("list_group_mentees"):
            mentees = (
                await self.session.execute(
                    select(Mentee)
                    .where(Mentee.group_id == group_id, Mentee.deleted_at.is_(None))
                    .order_by(Mentee.full_name)
                    .execution_options(populate_existing=True)
                )
            ).scalars().all()
        return [MenteeRecord.model_validate(mentee) for mentee in mentees]

    async def attach_mentees(self, group_id: int, mentee_ids: Sequence[int]) -> int:
        async with self._transaction("attach_mentees"):
            changed = await self._reassign(mentee_ids, group_id)
        return changed

    async def detach_mentees(self, group_id: int, mentee_ids: Sequence[int]) -> int:
        async with self._transaction("detach_mentees"):
            changed = await self._reassign(mentee_ids, None, only_from=group_id)
        return changed

    async def move_mentees(
        self,
        from_group_id: int,
        to_group_id: int,
        mentee_ids: Sequence[int],
    ) -> int:
        async with self._transaction("move_mentees"):
            changed = await self._reassign(mentee_ids, to_group_id, only_from=from_group_id)
        return changed

    async def list_mentee_history(self, mentee_id: int) -> List[HistoryEntry]:
        async with self._read("list_mentee_history"):
            rows = (
                await self.session.execute(
                    select(MenteeGroupHistory)
                    .where(MenteeGroupHistory.mentee_id == mentee_id)
                    .order_by(MenteeGroupHistory.moved_at, MenteeGroupHistory.id)
                )
            ).scalars().all()
        return [HistoryEntry.model_validate(row) for row in rows]

    async def list_mentor_history(self, group_id: int) -> List[MentorHistoryEntry]:
        async with self._read("list_mentor_history"):
            rows = (
                await self.session.execute(
                    select(GroupMentorHistory)
                    .where(GroupMentorHistory.group_id == group_id)
                    .order_by(GroupMentorHistory.changed_at, GroupMentorHistory.id)
                )
            ).scalars().all()
        return [MentorHistoryEntry.model_validate(row) for row in rows]


async def init_models(engine: AsyncEngine) -> None:
    """Create database tables if they do not exist"""

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
