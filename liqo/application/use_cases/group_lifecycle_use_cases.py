"""Create, edit, trash, restore and permanently delete groups."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Optional, TypeVar

from liqo.application.interfaces import MembershipStoreInterface
from liqo.application.use_cases.membership_use_cases import (
    AttachProposal,
    MembershipReconciler,
)
from liqo.domain.errors import (
    MembershipError,
    MembershipValidationError,
    MentorAlreadyAssignedError,
    NotFoundError,
)
from liqo.domain.models import (
    GroupChanges,
    GroupDraft,
    GroupFilters,
    GroupRecord,
    GroupStatistics,
    MenteeRecord,
    MentorHistoryEntry,
    MentorRecord,
    Page,
)
from liqo.domain.services import GenderPolicy, GroupLifecycle, GroupTransition
from liqo.models.user import Gender
from liqo.telemetry import record_membership_change, record_transition

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3

R = TypeVar("R")


@dataclass(slots=True)
class CreateProposal:
    draft: GroupDraft
    mentor: Optional[MentorRecord]
    attach: AttachProposal


@dataclass(slots=True)
class UpdateProposal:
    group: GroupRecord
    changes: GroupChanges
    attach: AttachProposal
    removed_ids: List[int] = field(default_factory=list)


@dataclass(slots=True)
class SoftDeleteResult:
    group: GroupRecord
    detached_count: int


@dataclass(slots=True)
class EditCandidates:
    """Mentors and mentees an edit of the group may pick from."""

    group_gender: Gender
    mentors: List[MentorRecord] = field(default_factory=list)
    mentees: List[MenteeRecord] = field(default_factory=list)


@dataclass(slots=True)
class BulkFailure:
    id: int
    code: str
    message: str


@dataclass(slots=True)
class BulkResult:
    succeeded: List[int] = field(default_factory=list)
    failed: List[BulkFailure] = field(default_factory=list)


class GroupLifecycleManager:
    """Owns group state transitions and their effect on membership.

    ``Active -> SoftDeleted -> (Active | PermanentlyDeleted)``. Soft delete
    detaches every mentee; restore brings the group back empty.
    """

    def __init__(
        self,
        store: MembershipStoreInterface,
        reconciler: Optional[MembershipReconciler] = None,
    ):
        self.store = store
        self.reconciler = reconciler or MembershipReconciler(store)

    # Validation helpers

    async def _normalise_name(self, raw_name: str, exclude_group_id: Optional[int] = None) -> str:
        name = (raw_name or "").strip()
        if not name:
            raise MembershipValidationError.single("name", "Group name is required")
        if len(name) < MIN_NAME_LENGTH:
            raise MembershipValidationError.single(
                "name",
                f"Group name must be at least {MIN_NAME_LENGTH} characters",
            )
        existing = await self.store.find_active_group_by_name(name)
        if existing is not None and existing.id != exclude_group_id:
            raise MembershipValidationError.single(
                "name",
                f"An active group named '{existing.name}' already exists",
            )
        return name

    async def _resolve_mentor(
        self,
        mentor_id: int,
        exclude_group_id: Optional[int] = None,
    ) -> MentorRecord:
        mentor = await self.store.get_mentor(mentor_id)
        if mentor is None:
            raise NotFoundError("Mentor", mentor_id)
        if not mentor.has_complete_profile:
            raise MembershipValidationError.single(
                "mentor_id",
                "Mentor profile is incomplete: full name and gender are required",
            )
        active = await self.store.get_active_group_for_mentor(
            mentor_id,
            exclude_group_id=exclude_group_id,
        )
        if active is not None:
            raise MentorAlreadyAssignedError(mentor_id, active.id, active.name)
        return mentor

    async def _require_group(self, group_id: int, include_trashed: bool = False) -> GroupRecord:
        group = await self.store.get_group(group_id, include_trashed=include_trashed)
        if group is None:
            raise NotFoundError("Group", group_id)
        return group

    # Create / edit

    async def propose_create(
        self,
        draft: GroupDraft,
        mentee_ids: Iterable[int] = (),
    ) -> CreateProposal:
        name = await self._normalise_name(draft.name)
        description = draft.description.strip() or None if draft.description else None

        mentor = None
        if draft.mentor_id is not None:
            mentor = await self._resolve_mentor(draft.mentor_id)

        gender = draft.gender or (mentor.gender if mentor else None)
        if mentor is not None and draft.gender is not None and draft.gender != mentor.gender:
            raise MembershipValidationError.single(
                "gender",
                f"Group gender must match the mentor's gender ({mentor.gender.value})",
            )

        normalised = GroupDraft(
            name=name,
            description=description,
            mentor_id=mentor.id if mentor else None,
            gender=gender,
        )
        attach = await self.reconciler.evaluate(None, gender, mentee_ids)
        return CreateProposal(draft=normalised, mentor=mentor, attach=attach)

    async def create(
        self,
        draft: GroupDraft,
        mentee_ids: Iterable[int] = (),
        confirmed_ids: Iterable[int] = (),
    ) -> GroupRecord:
        proposal = await self.propose_create(draft, mentee_ids)
        self.reconciler.ensure_confirmed(proposal.attach, confirmed_ids)

        group = await self.store.create_group(proposal.draft, proposal.attach.mentee_ids)
        if proposal.attach.conflicting:
            logger.info(
                "Group %s took mentees from other groups: %s",
                group.id,
                {c.mentee.id: c.current_group_id for c in proposal.attach.conflicting},
            )
        logger.info("Group '%s' created with id %s", group.name, group.id)
        record_membership_change("create", len(proposal.attach.mentee_ids))
        return group

    async def propose_update(self, group_id: int, changes: GroupChanges) -> UpdateProposal:
        group = await self._require_group(group_id)
        normalised = GroupChanges()

        if changes.name is not None:
            normalised.name = await self._normalise_name(changes.name, exclude_group_id=group.id)
        if changes.description is not None:
            normalised.description = changes.description.strip()

        target_gender = group.gender
        if changes.mentor_id is not None and changes.mentor_id != group.mentor_id:
            mentor = await self._resolve_mentor(changes.mentor_id, exclude_group_id=group.id)
            if group.gender is not None and mentor.gender != group.gender:
                raise MembershipValidationError.single(
                    "mentor_id",
                    f"Mentor gender ({mentor.gender.value}) does not match "
                    f"the group ({group.gender.value})",
                )
            if group.gender is None:
                normalised.gender = mentor.gender
                target_gender = mentor.gender
            normalised.mentor_id = mentor.id

        removed: List[int] = []
        added: List[int] = []
        if changes.mentee_ids is not None:
            desired = list(dict.fromkeys(changes.mentee_ids))
            current = [mentee.id for mentee in await self.store.list_group_mentees(group.id)]
            removed = [mentee_id for mentee_id in current if mentee_id not in desired]
            added = [mentee_id for mentee_id in desired if mentee_id not in current]
            normalised.mentee_ids = desired

        attach = await self.reconciler.evaluate(group.id, target_gender, added)
        return UpdateProposal(group=group, changes=normalised, attach=attach, removed_ids=removed)

    async def update(
        self,
        group_id: int,
        changes: GroupChanges,
        confirmed_ids: Iterable[int] = (),
    ) -> GroupRecord:
        proposal = await self.propose_update(group_id, changes)
        self.reconciler.ensure_confirmed(proposal.attach, confirmed_ids)

        group = await self.store.update_group(group_id, proposal.changes)
        if proposal.changes.mentor_id is not None:
            logger.info(
                "Group %s mentor changed from %s to %s",
                group_id,
                proposal.group.mentor_id,
                proposal.changes.mentor_id,
            )
        record_membership_change(
            "update",
            len(proposal.attach.mentee_ids) + len(proposal.removed_ids),
        )
        return group

    # Lifecycle transitions

    async def _run_transition(
        self,
        transition: GroupTransition,
        group_id: int,
        action: Callable[[int], Awaitable[R]],
    ) -> R:
        try:
            result = await action(group_id)
        except MembershipError:
            record_transition(transition.value, succeeded=False)
            raise
        record_transition(transition.value, succeeded=True)
        return result

    async def _soft_delete(self, group_id: int) -> SoftDeleteResult:
        group = await self._require_group(group_id, include_trashed=True)
        GroupLifecycle.next_state(group.id, group.state, GroupTransition.SOFT_DELETE)

        trashed, detached = await self.store.soft_delete_group(group.id)
        logger.info(
            "Group '%s' moved to trash; %d mentees detached",
            trashed.name,
            detached,
        )
        record_membership_change("soft_delete", detached)
        return SoftDeleteResult(group=trashed, detached_count=detached)

    async def _restore(self, group_id: int) -> GroupRecord:
        group = await self._require_group(group_id, include_trashed=True)
        GroupLifecycle.next_state(group.id, group.state, GroupTransition.RESTORE)

        if group.mentor_id is not None:
            active = await self.store.get_active_group_for_mentor(
                group.mentor_id,
                exclude_group_id=group.id,
            )
            if active is not None:
                raise MentorAlreadyAssignedError(group.mentor_id, active.id, active.name)
        clash = await self.store.find_active_group_by_name(group.name)
        if clash is not None:
            raise MembershipValidationError.single(
                "name",
                f"An active group named '{clash.name}' already exists",
            )

        restored = await self.store.restore_group(group.id)
        logger.info("Group '%s' restored without mentees", restored.name)
        return restored

    async def _permanent_delete(self, group_id: int) -> GroupRecord:
        group = await self._require_group(group_id, include_trashed=True)
        GroupLifecycle.next_state(group.id, group.state, GroupTransition.PERMANENT_DELETE)

        remaining = await self.store.list_group_mentees(group.id)
        if remaining:
            raise MembershipValidationError.single(
                "mentees",
                f"Group still has {len(remaining)} mentees; detach them first",
            )
        await self.store.force_delete_group(group.id)
        logger.info("Group '%s' permanently deleted", group.name)
        return group

    async def soft_delete(self, group_id: int) -> SoftDeleteResult:
        return await self._run_transition(GroupTransition.SOFT_DELETE, group_id, self._soft_delete)

    async def restore(self, group_id: int) -> GroupRecord:
        return await self._run_transition(GroupTransition.RESTORE, group_id, self._restore)

    async def permanent_delete(self, group_id: int) -> GroupRecord:
        return await self._run_transition(
            GroupTransition.PERMANENT_DELETE,
            group_id,
            self._permanent_delete,
        )

    async def _apply_many(
        self,
        group_ids: Iterable[int],
        action: Callable[[int], Awaitable[object]],
    ) -> BulkResult:
        ids = list(dict.fromkeys(group_ids))
        if not ids:
            raise MembershipValidationError.single("ids", "Select at least one group")

        result = BulkResult()
        for group_id in ids:
            try:
                await action(group_id)
            except MembershipError as exc:
                result.failed.append(BulkFailure(id=group_id, code=exc.code, message=exc.message))
            else:
                result.succeeded.append(group_id)
        logger.info(
            "Bulk group operation: %d succeeded, %d failed",
            len(result.succeeded),
            len(result.failed),
        )
        return result

    async def soft_delete_many(self, group_ids: Iterable[int]) -> BulkResult:
        return await self._apply_many(group_ids, self.soft_delete)

    async def restore_many(self, group_ids: Iterable[int]) -> BulkResult:
        return await self._apply_many(group_ids, self.restore)

    async def permanent_delete_many(self, group_ids: Iterable[int]) -> BulkResult:
        return await self._apply_many(group_ids, self.permanent_delete)

    # Read side

    async def get(self, group_id: int, include_trashed: bool = True) -> GroupRecord:
        return await self._require_group(group_id, include_trashed=include_trashed)

    async def list_active(
        self,
        filters: GroupFilters,
        page: int = 1,
        per_page: int = 10,
    ) -> Page[GroupRecord]:
        return await self.store.list_groups(
            filters.model_copy(update={"trashed": False}),
            page=page,
            per_page=per_page,
        )

    async def list_trashed(
        self,
        filters: GroupFilters,
        page: int = 1,
        per_page: int = 10,
    ) -> Page[GroupRecord]:
        return await self.store.list_groups(
            filters.model_copy(update={"trashed": True}),
            page=page,
            per_page=per_page,
        )

    async def statistics(self) -> GroupStatistics:
        return await self.store.group_statistics()

    async def available_mentors(self) -> List[MentorRecord]:
        return await self.store.list_available_mentors()

    async def mentor_gender(self, mentor_id: int) -> MentorRecord:
        mentor = await self.store.get_mentor(mentor_id)
        if mentor is None or not mentor.has_complete_profile:
            raise NotFoundError("Mentor", mentor_id)
        return mentor

    async def available_mentees(
        self,
        mentor_id: int,
        include_occupied: bool = True,
    ) -> List[MenteeRecord]:
        await self.mentor_gender(mentor_id)
        return await self.store.list_available_mentees(
            mentor_id,
            include_occupied=include_occupied,
        )

    async def edit_candidates(self, group_id: int) -> EditCandidates:
        """Mentors and mentees of the group's gender, for the edit screen.

        Mentors are the current one plus every free mentor; mentees include
        those already grouped, who carry their ``group_id``.
        """
        group = await self._require_group(group_id)
        gender = group.gender
        if gender is None and group.mentor_id is not None:
            gender = await self.store.get_mentor_gender(group.mentor_id)
        if gender is None:
            raise MembershipValidationError.single(
                "gender",
                "The group has no gender yet; assign a mentor first",
            )

        mentors = await self.store.list_available_mentors()
        if group.mentor_id is not None and all(m.id != group.mentor_id for m in mentors):
            current = await self.store.get_mentor(group.mentor_id)
            if current is not None:
                mentors.insert(0, current)
        return EditCandidates(
            group_gender=gender,
            mentors=[m for m in mentors if GenderPolicy.is_compatible(m.gender, gender)],
            mentees=await self.store.list_mentees_by_gender(gender),
        )

    async def group_mentees(self, group_id: int) -> List[MenteeRecord]:
        group = await self._require_group(group_id, include_trashed=True)
        return await self.store.list_group_mentees(group.id)

    async def mentor_history(self, group_id: int) -> List[MentorHistoryEntry]:
        group = await self._require_group(group_id, include_trashed=True)
        return await self.store.list_mentor_history(group.id)


__all__ = [
    "BulkFailure",
    "BulkResult",
    "CreateProposal",
    "EditCandidates",
    "GroupLifecycleManager",
    "SoftDeleteResult",
    "UpdateProposal",
]
