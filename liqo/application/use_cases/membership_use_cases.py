"""Attach, detach and move mentees while keeping one active group per mentee."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Sequence, Set

from liqo.application.interfaces import MembershipStoreInterface
from liqo.domain.errors import (
    ConflictingReassignError,
    GenderMismatchError,
    MembershipValidationError,
    NotFoundError,
)
from liqo.domain.models import GroupRecord, HistoryEntry, MenteeRecord
from liqo.domain.services import (
    ConflictDetector,
    ConflictingReassign,
    GenderPolicy,
    SimpleAttach,
)
from liqo.models.user import Gender
from liqo.telemetry import record_membership_change

logger = logging.getLogger(__name__)


def _unique_ids(mentee_ids: Iterable[int]) -> List[int]:
    return list(dict.fromkeys(mentee_ids))


@dataclass(slots=True)
class AttachProposal:
    """Result of the first phase of an attach: what would happen, nothing written.

    ``group_id`` is ``None`` while the target group does not exist yet
    (group creation with initial mentees).
    """

    group_id: Optional[int]
    target_gender: Optional[Gender]
    mentee_ids: List[int] = field(default_factory=list)
    simple: List[SimpleAttach] = field(default_factory=list)
    conflicting: List[ConflictingReassign] = field(default_factory=list)

    @property
    def conflicting_ids(self) -> Set[int]:
        return {conflict.mentee.id for conflict in self.conflicting}

    @property
    def requires_confirmation(self) -> bool:
        return bool(self.conflicting)

    def unconfirmed(self, confirmed_ids: Iterable[int]) -> List[ConflictingReassign]:
        confirmed = set(confirmed_ids)
        return [c for c in self.conflicting if c.mentee.id not in confirmed]

    def pending_ids(self) -> List[int]:
        """Ids whose group would actually change on commit."""
        unchanged = {
            item.mentee.id
            for item in self.simple
            if self.group_id is not None and item.mentee.group_id == self.group_id
        }
        return [mentee_id for mentee_id in self.mentee_ids if mentee_id not in unchanged]


@dataclass(slots=True)
class MembershipChange:
    operation: str
    group_id: int
    mentee_ids: List[int]
    changed_count: int


class MembershipReconciler:
    """Executes membership operations against the store.

    Attaching mentees that already belong to another active group is a two
    phase operation: ``propose_attach`` partitions the request, and
    ``commit_attach`` writes only once every conflicting mentee has been
    explicitly confirmed by the operator.
    """

    def __init__(self, store: MembershipStoreInterface):
        self.store = store

    async def _require_group(self, group_id: int, include_trashed: bool = False) -> GroupRecord:
        group = await self.store.get_group(group_id, include_trashed=include_trashed)
        if group is None:
            raise NotFoundError("Group", group_id)
        return group

    async def _load_mentees(self, mentee_ids: Sequence[int]) -> List[MenteeRecord]:
        mentees = await self.store.get_mentees(mentee_ids)
        missing = set(mentee_ids) - {mentee.id for mentee in mentees}
        if missing:
            raise NotFoundError("Mentee", missing)
        return mentees

    @staticmethod
    def _require_ids(mentee_ids: Iterable[int]) -> List[int]:
        ids = _unique_ids(mentee_ids)
        if not ids:
            raise MembershipValidationError.single("mentee_ids", "Select at least one mentee")
        return ids

    @staticmethod
    def _check_gender(mentees: Sequence[MenteeRecord], target_gender: Optional[Gender]) -> None:
        if target_gender is None:
            raise MembershipValidationError.single(
                "gender",
                "The group needs a mentor or a gender before mentees can be added",
            )
        mismatched = GenderPolicy.mismatches(mentees, target_gender)
        if mismatched:
            raise GenderMismatchError(mismatched, target_gender)

    async def evaluate(
        self,
        group_id: Optional[int],
        target_gender: Optional[Gender],
        mentee_ids: Iterable[int],
    ) -> AttachProposal:
        """Validate candidates for a group and partition them by conflict."""

        ids = _unique_ids(mentee_ids)
        proposal = AttachProposal(group_id=group_id, target_gender=target_gender, mentee_ids=ids)
        if not ids:
            return proposal

        mentees = await self._load_mentees(ids)
        self._check_gender(mentees, target_gender)
        simple, conflicting = ConflictDetector.partition(mentees, group_id)

        group_names: dict[int, Optional[str]] = {}
        for conflict in conflicting:
            if conflict.current_group_id not in group_names:
                current = await self.store.get_group(conflict.current_group_id)
                group_names[conflict.current_group_id] = current.name if current else None
        proposal.simple = simple
        proposal.conflicting = [
            replace(conflict, current_group_name=group_names[conflict.current_group_id])
            for conflict in conflicting
        ]
        return proposal

    @staticmethod
    def ensure_confirmed(proposal: AttachProposal, confirmed_ids: Iterable[int]) -> None:
        unconfirmed = proposal.unconfirmed(confirmed_ids)
        if unconfirmed:
            raise ConflictingReassignError(unconfirmed)

    async def propose_attach(self, group_id: int, mentee_ids: Iterable[int]) -> AttachProposal:
        ids = self._require_ids(mentee_ids)
        group = await self._require_group(group_id)
        return await self.evaluate(group.id, group.gender, ids)

    async def commit_attach(
        self,
        proposal: AttachProposal,
        confirmed_ids: Iterable[int] = (),
        operation: str = "attach",
    ) -> MembershipChange:
        """Write a proposal once its conflicts are confirmed.

        The proposal is re-evaluated against the store so a mentee that was
        reassigned after the proposal was shown still needs confirmation.
        """

        if proposal.group_id is None:
            raise MembershipValidationError.single("group_id", "Target group is required")
        confirmed = set(confirmed_ids)
        fresh = await self.propose_attach(proposal.group_id, proposal.mentee_ids)
        self.ensure_confirmed(fresh, confirmed)

        pending = fresh.pending_ids()
        changed = 0
        if pending:
            changed = await self.store.attach_mentees(fresh.group_id, pending)
        if fresh.conflicting:
            logger.info(
                "Mentees moved to group %s: %s",
                fresh.group_id,
                {c.mentee.id: c.current_group_id for c in fresh.conflicting},
            )
        record_membership_change(operation, changed)
        return MembershipChange(
            operation=operation,
            group_id=fresh.group_id,
            mentee_ids=fresh.mentee_ids,
            changed_count=changed,
        )

    async def attach(
        self,
        group_id: int,
        mentee_ids: Iterable[int],
        confirmed_ids: Iterable[int] = (),
    ) -> MembershipChange:
        proposal = await self.propose_attach(group_id, mentee_ids)
        return await self.commit_attach(proposal, confirmed_ids)

    async def detach(self, group_id: int, mentee_ids: Iterable[int]) -> MembershipChange:
        """Release mentees from a group; ids not in the group are ignored."""

        ids = self._require_ids(mentee_ids)
        await self._require_group(group_id, include_trashed=True)
        changed = await self.store.detach_mentees(group_id, ids)
        logger.info("Detached %d of %d mentees from group %s", changed, len(ids), group_id)
        record_membership_change("detach", changed)
        return MembershipChange(
            operation="detach",
            group_id=group_id,
            mentee_ids=ids,
            changed_count=changed,
        )

    async def move(
        self,
        from_group_id: int,
        to_group_id: int,
        mentee_ids: Iterable[int],
    ) -> MembershipChange:
        ids = self._require_ids(mentee_ids)
        if from_group_id == to_group_id:
            raise MembershipValidationError.single(
                "to_group_id",
                "Target group must differ from the source group",
            )
        source = await self._require_group(from_group_id, include_trashed=True)
        target = await self._require_group(to_group_id)
        mentees = await self._load_mentees(ids)

        strays = [mentee for mentee in mentees if mentee.group_id != source.id]
        if strays:
            raise MembershipValidationError(
                {
                    "mentee_ids": [
                        f"Mentee {mentee.full_name} is not in group '{source.name}'"
                        for mentee in strays
                    ]
                }
            )
        self._check_gender(mentees, target.gender)

        changed = await self.store.move_mentees(source.id, target.id, ids)
        logger.info(
            "Moved %d mentees from group %s to group %s",
            changed,
            source.id,
            target.id,
        )
        record_membership_change("move", changed)
        return MembershipChange(
            operation="move",
            group_id=target.id,
            mentee_ids=ids,
            changed_count=changed,
        )

    async def bulk_move(self, target_group_id: int, mentee_ids: Iterable[int]) -> MembershipChange:
        """Move mentees from any groups into one target.

        Choosing the target for an explicit list is the operator's
        confirmation, so every conflict is treated as confirmed.
        """

        proposal = await self.propose_attach(target_group_id, mentee_ids)
        return await self.commit_attach(
            proposal,
            confirmed_ids=proposal.conflicting_ids,
            operation="bulk_move",
        )

    async def history(self, mentee_id: int) -> List[HistoryEntry]:
        await self._load_mentees([mentee_id])
        return await self.store.list_mentee_history(mentee_id)


__all__ = ["AttachProposal", "MembershipChange", "MembershipReconciler"]
