from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Tuple

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
from liqo.models.user import Gender


class MembershipStoreInterface(ABC):
    """Persistence contract for groups, mentors, mentees and their edges.

    Every write is a single transaction. Implementations raise
    ``StoreUnavailableError`` when the backing service fails and must leave no
    partial change behind. Every change of a mentee's group is recorded as a
    history entry inside the same transaction.
    """

    # Groups

    @abstractmethod
    async def list_groups(
        self,
        filters: GroupFilters,
        page: int = 1,
        per_page: int = 10,
    ) -> Page[GroupRecord]:
        ...

    @abstractmethod
    async def get_group(
        self,
        group_id: int,
        include_trashed: bool = False,
    ) -> Optional[GroupRecord]:
        ...

    @abstractmethod
    async def find_active_group_by_name(self, name: str) -> Optional[GroupRecord]:
        """Case-insensitive lookup among non-deleted groups."""

    @abstractmethod
    async def create_group(
        self,
        draft: GroupDraft,
        mentee_ids: Sequence[int] = (),
    ) -> GroupRecord:
        ...

    @abstractmethod
    async def update_group(
        self,
        group_id: int,
        changes: GroupChanges,
    ) -> GroupRecord:
        """Apply metadata changes and, if ``changes.mentee_ids`` is set, replace the member set."""

    @abstractmethod
    async def soft_delete_group(self, group_id: int) -> Tuple[GroupRecord, int]:
        """Mark the group deleted and detach its mentees; returns the detached count."""

    @abstractmethod
    async def restore_group(self, group_id: int) -> GroupRecord:
        ...

    @abstractmethod
    async def force_delete_group(self, group_id: int) -> None:
        ...

    @abstractmethod
    async def group_statistics(self) -> GroupStatistics:
        ...

    # Mentors

    @abstractmethod
    async def list_available_mentors(self) -> List[MentorRecord]:
        ...

    @abstractmethod
    async def get_mentor(self, mentor_id: int) -> Optional[MentorRecord]:
        ...

    @abstractmethod
    async def get_mentor_gender(self, mentor_id: int) -> Optional[Gender]:
        ...

    @abstractmethod
    async def find_mentor_by_email(self, email: str) -> Optional[MentorRecord]:
        ...

    @abstractmethod
    async def get_active_group_for_mentor(
        self,
        mentor_id: int,
        exclude_group_id: Optional[int] = None,
    ) -> Optional[GroupRecord]:
        ...

    # Mentees

    @abstractmethod
    async def list_available_mentees(
        self,
        mentor_id: int,
        include_occupied: bool = True,
    ) -> List[MenteeRecord]:
        """Mentees sharing the mentor's gender, optionally only ungrouped ones."""

    @abstractmethod
    async def list_mentees_by_gender(
        self,
        gender: Gender,
        include_occupied: bool = True,
    ) -> List[MenteeRecord]:
        ...

    @abstractmethod
    async def get_mentees(self, mentee_ids: Iterable[int]) -> List[MenteeRecord]:
        ...

    @abstractmethod
    async def find_mentees_by_name(self, names: Iterable[str]) -> List[MenteeRecord]:
        ...

    @abstractmethod
    async def list_group_mentees(self, group_id: int) -> List[MenteeRecord]:
        ...

    @abstractmethod
    async def attach_mentees(self, group_id: int, mentee_ids: Sequence[int]) -> int:
        ...

    @abstractmethod
    async def detach_mentees(self, group_id: int, mentee_ids: Sequence[int]) -> int:
        ...

    @abstractmethod
    async def move_mentees(
        self,
        from_group_id: int,
        to_group_id: int,
        mentee_ids: Sequence[int],
    ) -> int:
        ...

    @abstractmethod
    async def list_mentee_history(self, mentee_id: int) -> List[HistoryEntry]:
        ...

    @abstractmethod
    async def list_mentor_history(self, group_id: int) -> List[MentorHistoryEntry]:
        ...
