"""Typed failures raised by the membership core.

Each error knows the HTTP status and machine-readable code it maps to so the
presentation layer can render it without re-evaluating any business rule.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping


class MembershipError(Exception):
    """Base class for every failure surfaced to the operator."""

    status_code: int = 400
    code: str = "membership_error"
    retryable: bool = False

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"detail": self.message, "code": self.code}
        payload.update(self.details)
        if self.retryable:
            payload["retryable"] = True
        return payload


class MembershipValidationError(MembershipError):
    """Missing or malformed input, reported per field."""

    status_code = 422
    code = "validation_error"

    def __init__(self, errors: Mapping[str, Iterable[str]], message: str | None = None):
        normalised = {field: list(messages) for field, messages in errors.items()}
        if message is None:
            message = "; ".join(
                f"{field}: {text}"
                for field, messages in normalised.items()
                for text in messages
            )
        super().__init__(message, errors=normalised)
        self.errors = normalised

    @classmethod
    def single(cls, field: str, message: str) -> "MembershipValidationError":
        return cls({field: [message]}, message=message)


class GenderMismatchError(MembershipError):
    status_code = 422
    code = "gender_mismatch"

    def __init__(self, mentee_ids: Iterable[int], expected_gender: Any) -> None:
        ids = sorted(mentee_ids)
        expected = getattr(expected_gender, "value", expected_gender)
        super().__init__(
            f"Mentees {ids} do not match the group gender ({expected})",
            mentee_ids=ids,
            expected_gender=expected,
        )
        self.mentee_ids = ids


class MentorAlreadyAssignedError(MembershipError):
    status_code = 409
    code = "mentor_already_assigned"

    def __init__(self, mentor_id: int, group_id: int, group_name: str | None = None):
        label = f"'{group_name}'" if group_name else f"#{group_id}"
        super().__init__(
            f"Mentor {mentor_id} already leads active group {label}",
            mentor_id=mentor_id,
            group_id=group_id,
        )
        self.mentor_id = mentor_id
        self.group_id = group_id


class ConflictingReassignError(MembershipError):
    """Mentees already in another active group need explicit confirmation."""

    status_code = 409
    code = "conflicting_reassign"

    def __init__(self, conflicts: Iterable[Any]) -> None:
        items = list(conflicts)
        described = [
            {
                "mentee_id": conflict.mentee.id,
                "mentee_name": conflict.mentee.full_name,
                "current_group_id": conflict.current_group_id,
                "current_group_name": conflict.current_group_name,
            }
            for conflict in items
        ]
        names = ", ".join(entry["mentee_name"] for entry in described)
        super().__init__(
            f"Confirmation required to move mentees from their current group: {names}",
            conflicts=described,
        )
        self.conflicts = items


class NotFoundError(MembershipError):
    status_code = 404
    code = "not_found"

    def __init__(self, resource: str, ids: Iterable[int] | int) -> None:
        id_list = [ids] if isinstance(ids, int) else sorted(ids)
        super().__init__(
            f"{resource} not found: {', '.join(str(item) for item in id_list)}",
            resource=resource,
            ids=id_list,
        )
        self.resource = resource
        self.ids = id_list


class InvalidTransitionError(MembershipError):
    """Lifecycle action not legal from the group's current state."""

    status_code = 409
    code = "invalid_transition"

    def __init__(self, group_id: int, state: Any, transition: Any) -> None:
        state_value = getattr(state, "value", state)
        transition_value = getattr(transition, "value", transition)
        super().__init__(
            f"Cannot {transition_value.replace('_', ' ')} group {group_id} "
            f"while it is {state_value.replace('_', ' ')}",
            group_id=group_id,
            state=state_value,
            transition=transition_value,
        )


class StoreUnavailableError(MembershipError):
    status_code = 503
    code = "store_unavailable"
    retryable = True

    def __init__(self, message: str = "Membership store is unavailable, try again") -> None:
        super().__init__(message)


__all__ = [
    "MembershipError",
    "MembershipValidationError",
    "GenderMismatchError",
    "MentorAlreadyAssignedError",
    "ConflictingReassignError",
    "NotFoundError",
    "InvalidTransitionError",
    "StoreUnavailableError",
]
