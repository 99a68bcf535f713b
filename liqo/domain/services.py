from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union

from liqo.domain.errors import InvalidTransitionError
from liqo.domain.models import GroupState, MenteeRecord
from liqo.models.user import Gender


@dataclass(frozen=True, slots=True)
class SimpleAttach:
    """Mentee is ungrouped or already in the target group."""

    mentee: MenteeRecord


@dataclass(frozen=True, slots=True)
class ConflictingReassign:
    """Mentee belongs to another active group; attaching it moves it."""

    mentee: MenteeRecord
    current_group_id: int
    current_group_name: Optional[str] = None


Classification = Union[SimpleAttach, ConflictingReassign]


class GenderPolicy:
    """Gender-homogeneous grouping, shared by create, edit, attach and import."""

    @staticmethod
    def is_compatible(gender: Optional[Gender], target_gender: Optional[Gender]) -> bool:
        return gender is not None and target_gender is not None and gender == target_gender

    @staticmethod
    def mismatches(
        mentees: Iterable[MenteeRecord],
        target_gender: Optional[Gender],
    ) -> List[int]:
        """Return ids of mentees that cannot join a group of ``target_gender``."""
        return [
            mentee.id
            for mentee in mentees
            if not GenderPolicy.is_compatible(mentee.gender, target_gender)
        ]


class ConflictDetector:
    """Decides whether attaching a mentee needs operator confirmation."""

    @staticmethod
    def classify(mentee: MenteeRecord, target_group_id: Optional[int]) -> Classification:
        if mentee.group_id is None or mentee.group_id == target_group_id:
            return SimpleAttach(mentee=mentee)
        return ConflictingReassign(mentee=mentee, current_group_id=mentee.group_id)

    @staticmethod
    def partition(
        mentees: Iterable[MenteeRecord],
        target_group_id: Optional[int],
    ) -> Tuple[List[SimpleAttach], List[ConflictingReassign]]:
        simple: List[SimpleAttach] = []
        conflicting: List[ConflictingReassign] = []
        for mentee in mentees:
            outcome = ConflictDetector.classify(mentee, target_group_id)
            if isinstance(outcome, ConflictingReassign):
                conflicting.append(outcome)
            else:
                simple.append(outcome)
        return simple, conflicting


class GroupTransition(str, Enum):
    SOFT_DELETE = "soft_delete"
    RESTORE = "restore"
    PERMANENT_DELETE = "permanent_delete"


_TRANSITIONS = {
    (GroupState.ACTIVE, GroupTransition.SOFT_DELETE): GroupState.SOFT_DELETED,
    (GroupState.SOFT_DELETED, GroupTransition.RESTORE): GroupState.ACTIVE,
    (GroupState.SOFT_DELETED, GroupTransition.PERMANENT_DELETE): GroupState.PERMANENTLY_DELETED,
}


class GroupLifecycle:
    """Three-state machine for soft-delete, restore and permanent delete."""

    @staticmethod
    def next_state(
        group_id: int,
        current: GroupState,
        transition: GroupTransition,
    ) -> GroupState:
        try:
            return _TRANSITIONS[(current, transition)]
        except KeyError:
            raise InvalidTransitionError(group_id, current, transition) from None

    @staticmethod
    def can(current: GroupState, transition: GroupTransition) -> bool:
        return (current, transition) in _TRANSITIONS


__all__ = [
    "SimpleAttach",
    "ConflictingReassign",
    "Classification",
    "GenderPolicy",
    "ConflictDetector",
    "GroupTransition",
    "GroupLifecycle",
]
