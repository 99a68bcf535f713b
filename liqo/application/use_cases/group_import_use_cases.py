"""Bulk creation of groups from a spreadsheet."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from pydantic import EmailStr, TypeAdapter, ValidationError

from liqo.application.interfaces import MembershipStoreInterface
from liqo.domain.errors import MembershipError, MembershipValidationError, StoreUnavailableError
from liqo.domain.models import GroupDraft, MenteeRecord, MentorRecord
from liqo.domain.services import GenderPolicy
from liqo.telemetry import record_import_rows

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3
# ids above this are out of range for the mentee primary key
MAX_MENTEE_ID_DIGITS = 9

_email_adapter = TypeAdapter(EmailStr)


@dataclass(slots=True)
class GroupImportRow:
    """One data row of the import sheet, already decoded to text."""

    row_number: int
    group_name: str = ""
    description: str = ""
    mentor_email: str = ""
    mentees: List[str] = field(default_factory=list)


@dataclass(slots=True)
class GroupSpreadsheet:
    rows: List[GroupImportRow] = field(default_factory=list)


@dataclass(slots=True)
class RowFailure:
    row: int
    errors: List[str]


@dataclass(slots=True)
class ImportResult:
    created_count: int = 0
    failures: List[RowFailure] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failures)


def _is_mentee_id(reference: str) -> bool:
    """ASCII digits short enough for the id column; anything else is a name."""
    return (
        reference.isascii()
        and reference.isdigit()
        and len(reference) <= MAX_MENTEE_ID_DIGITS
    )


class GroupImportProcessor:
    """Validates each row on its own and creates the valid ones.

    A failing row never blocks the others. Names, mentors and mentees are
    claimed by the first row that uses them successfully, so later rows of
    the same file cannot reuse them.
    """

    def __init__(self, store: MembershipStoreInterface, max_rows: int = 500):
        self.store = store
        self.max_rows = max_rows

    async def import_groups(self, sheet: GroupSpreadsheet) -> ImportResult:
        if not sheet.rows:
            raise MembershipValidationError.single("file", "The file contains no data rows")
        if len(sheet.rows) > self.max_rows:
            raise MembershipValidationError.single(
                "file",
                f"The file has {len(sheet.rows)} rows; at most {self.max_rows} are allowed",
            )

        result = ImportResult()
        seen_names: Set[str] = set()
        seen_mentors: Set[int] = set()
        seen_mentees: Set[int] = set()

        for row in sheet.rows:
            try:
                errors, draft, mentee_ids = await self._validate_row(
                    row, seen_names, seen_mentors, seen_mentees
                )
                if not errors:
                    await self.store.create_group(draft, mentee_ids)
            except StoreUnavailableError as exc:
                logger.error("Import row %d aborted, store unavailable", row.row_number)
                errors = [exc.message]
            except MembershipError as exc:
                logger.warning("Import row %d could not be stored: %s", row.row_number, exc.message)
                errors = [exc.message]

            if errors:
                result.failures.append(RowFailure(row=row.row_number, errors=errors))
                continue

            result.created_count += 1
            seen_names.add(draft.name.lower())
            if draft.mentor_id is not None:
                seen_mentors.add(draft.mentor_id)
            seen_mentees.update(mentee_ids)

        logger.info(
            "Group import finished: %d created, %d rows failed",
            result.created_count,
            result.failed_count,
        )
        record_import_rows(result.created_count, result.failed_count)
        return result

    async def _validate_row(
        self,
        row: GroupImportRow,
        seen_names: Set[str],
        seen_mentors: Set[int],
        seen_mentees: Set[int],
    ) -> Tuple[List[str], Optional[GroupDraft], List[int]]:
        errors: List[str] = []

        name = row.group_name.strip()
        if not name:
            errors.append("Group name is required")
        elif len(name) < MIN_NAME_LENGTH:
            errors.append(f"Group name must be at least {MIN_NAME_LENGTH} characters")
        elif name.lower() in seen_names:
            errors.append(f"Group name '{name}' is used by an earlier row")
        elif await self.store.find_active_group_by_name(name) is not None:
            errors.append(f"Group name '{name}' already exists")

        mentor = await self._resolve_mentor(row.mentor_email.strip(), seen_mentors, errors)

        mentees: List[MenteeRecord] = []
        if row.mentees:
            if not row.mentor_email.strip():
                errors.append("Mentees can only be listed together with a mentor")
            mentees = await self._resolve_mentees(row.mentees, seen_mentees, errors)
            if mentor is not None and mentor.gender is not None:
                for mentee_id in GenderPolicy.mismatches(mentees, mentor.gender):
                    mentee = next(m for m in mentees if m.id == mentee_id)
                    errors.append(
                        f"Mentee {mentee.full_name} is {mentee.gender.value}, "
                        f"the mentor is {mentor.gender.value}"
                    )

        if errors:
            return errors, None, []

        draft = GroupDraft(
            name=name,
            description=row.description.strip() or None,
            mentor_id=mentor.id if mentor else None,
            gender=mentor.gender if mentor else None,
        )
        return errors, draft, [mentee.id for mentee in mentees]

    async def _resolve_mentor(
        self,
        email: str,
        seen_mentors: Set[int],
        errors: List[str],
    ) -> Optional[MentorRecord]:
        if not email:
            return None
        try:
            email = _email_adapter.validate_python(email)
        except ValidationError:
            errors.append(f"Mentor email '{email}' is not a valid email address")
            return None

        mentor = await self.store.find_mentor_by_email(email)
        if mentor is None:
            errors.append(f"No mentor found with email '{email}'")
            return None
        if not mentor.has_complete_profile:
            errors.append(f"Mentor '{email}' has an incomplete profile")
            return None
        if mentor.id in seen_mentors:
            errors.append(f"Mentor '{email}' is used by an earlier row")
            return None
        active = await self.store.get_active_group_for_mentor(mentor.id)
        if active is not None:
            errors.append(f"Mentor '{email}' already leads group '{active.name}'")
            return None
        return mentor

    async def _resolve_mentees(
        self,
        references: List[str],
        seen_mentees: Set[int],
        errors: List[str],
    ) -> List[MenteeRecord]:
        ids = [int(ref) for ref in references if _is_mentee_id(ref)]
        names = [ref for ref in references if not _is_mentee_id(ref)]

        by_id = {mentee.id: mentee for mentee in await self.store.get_mentees(ids)}
        by_name: Dict[str, List[MenteeRecord]] = {}
        for mentee in await self.store.find_mentees_by_name(names):
            by_name.setdefault(mentee.full_name.strip().lower(), []).append(mentee)

        resolved: List[MenteeRecord] = []
        for ref in references:
            if _is_mentee_id(ref):
                mentee = by_id.get(int(ref))
                if mentee is None:
                    errors.append(f"Mentee with id {ref} not found")
                    continue
            else:
                matches = by_name.get(ref.strip().lower(), [])
                if not matches:
                    errors.append(f"Mentee '{ref}' not found")
                    continue
                if len(matches) > 1:
                    errors.append(f"Mentee name '{ref}' is ambiguous; use the mentee id")
                    continue
                mentee = matches[0]

            if mentee.id in seen_mentees:
                errors.append(f"Mentee {mentee.full_name} is listed by an earlier row")
            elif mentee.group_id is not None:
                errors.append(f"Mentee {mentee.full_name} already belongs to a group")
            elif mentee.id not in {m.id for m in resolved}:
                resolved.append(mentee)
        return resolved


__all__ = [
    "GroupImportProcessor",
    "GroupImportRow",
    "GroupSpreadsheet",
    "ImportResult",
    "RowFailure",
]
