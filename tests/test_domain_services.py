"""Pure domain rules: gender policy, conflict detection, lifecycle machine."""

from __future__ import annotations

import pytest

from liqo.domain.errors import ConflictingReassignError, InvalidTransitionError
from liqo.domain.models import GroupState, MenteeRecord
from liqo.domain.services import (
    ConflictDetector,
    ConflictingReassign,
    GenderPolicy,
    GroupLifecycle,
    GroupTransition,
    SimpleAttach,
)
from liqo.models.user import Gender


def _mentee(mentee_id: int, gender: Gender = Gender.IKHWAN, group_id=None) -> MenteeRecord:
    return MenteeRecord(id=mentee_id, full_name=f"Mentee {mentee_id}", gender=gender, group_id=group_id)


def test_gender_policy_requires_both_sides_and_equality() -> None:
    assert GenderPolicy.is_compatible(Gender.IKHWAN, Gender.IKHWAN)
    assert not GenderPolicy.is_compatible(Gender.IKHWAN, Gender.AKHWAT)
    assert not GenderPolicy.is_compatible(Gender.AKHWAT, None)


def test_gender_policy_lists_mismatched_ids() -> None:
    mentees = [_mentee(1), _mentee(2, Gender.AKHWAT), _mentee(3)]

    assert GenderPolicy.mismatches(mentees, Gender.IKHWAN) == [2]


def test_ungrouped_mentee_is_simple_attach() -> None:
    outcome = ConflictDetector.classify(_mentee(1), target_group_id=7)

    assert isinstance(outcome, SimpleAttach)


def test_mentee_already_in_target_is_simple_attach() -> None:
    outcome = ConflictDetector.classify(_mentee(1, group_id=7), target_group_id=7)

    assert isinstance(outcome, SimpleAttach)


def test_mentee_in_other_group_is_conflicting() -> None:
    outcome = ConflictDetector.classify(_mentee(1, group_id=3), target_group_id=7)

    assert isinstance(outcome, ConflictingReassign)
    assert outcome.current_group_id == 3


def test_new_group_target_conflicts_with_any_grouped_mentee() -> None:
    simple, conflicting = ConflictDetector.partition(
        [_mentee(1), _mentee(2, group_id=4)],
        target_group_id=None,
    )

    assert [item.mentee.id for item in simple] == [1]
    assert [item.mentee.id for item in conflicting] == [2]


def test_conflict_error_payload_describes_current_group() -> None:
    conflict = ConflictingReassign(
        mentee=_mentee(5, group_id=2),
        current_group_id=2,
        current_group_name="Tahfidz A",
    )

    payload = ConflictingReassignError([conflict]).to_payload()

    assert payload["code"] == "conflicting_reassign"
    assert payload["conflicts"] == [
        {
            "mentee_id": 5,
            "mentee_name": "Mentee 5",
            "current_group_id": 2,
            "current_group_name": "Tahfidz A",
        }
    ]


@pytest.mark.parametrize(
    ("state", "transition", "expected"),
    [
        (GroupState.ACTIVE, GroupTransition.SOFT_DELETE, GroupState.SOFT_DELETED),
        (GroupState.SOFT_DELETED, GroupTransition.RESTORE, GroupState.ACTIVE),
        (GroupState.SOFT_DELETED, GroupTransition.PERMANENT_DELETE, GroupState.PERMANENTLY_DELETED),
    ],
)
def test_legal_transitions(state, transition, expected) -> None:
    assert GroupLifecycle.next_state(1, state, transition) == expected


@pytest.mark.parametrize(
    ("state", "transition"),
    [
        (GroupState.ACTIVE, GroupTransition.RESTORE),
        (GroupState.ACTIVE, GroupTransition.PERMANENT_DELETE),
        (GroupState.SOFT_DELETED, GroupTransition.SOFT_DELETE),
        (GroupState.PERMANENTLY_DELETED, GroupTransition.RESTORE),
    ],
)
def test_illegal_transitions_are_rejected(state, transition) -> None:
    assert not GroupLifecycle.can(state, transition)
    with pytest.raises(InvalidTransitionError) as excinfo:
        GroupLifecycle.next_state(9, state, transition)

    assert excinfo.value.status_code == 409
    assert excinfo.value.details["group_id"] == 9
