"""Attach, detach and move through the real store on SQLite."""

from __future__ import annotations

import pytest

from liqo.domain.errors import (
    ConflictingReassignError,
    GenderMismatchError,
    MembershipValidationError,
    NotFoundError,
)
from liqo.models.user import Gender


async def _group_of(store, mentee_id):
    [mentee] = await store.get_mentees([mentee_id])
    return mentee.group_id


async def test_attach_ungrouped_mentees_records_history(seed, store, reconciler) -> None:
    mentor = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    group = await seed.group("Tahfidz A", mentor=mentor)
    a = await seed.mentee("Abdullah", Gender.IKHWAN)
    b = await seed.mentee("Bilal", Gender.IKHWAN)

    change = await reconciler.attach(group.id, [a.id, b.id])

    assert change.changed_count == 2
    members = await store.list_group_mentees(group.id)
    assert {m.id for m in members} == {a.id, b.id}
    history = await store.list_mentee_history(a.id)
    assert [(h.from_group_id, h.to_group_id) for h in history] == [(None, group.id)]


async def test_attach_is_noop_for_existing_members(seed, store, reconciler) -> None:
    mentor = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    a = await seed.mentee("Abdullah", Gender.IKHWAN)
    group = await seed.group("Tahfidz A", mentor=mentor, mentees=[a])

    change = await reconciler.attach(group.id, [a.id])

    assert change.changed_count == 0
    assert await store.list_mentee_history(a.id) == []


async def test_conflict_gate_blocks_until_confirmed(seed, store, reconciler) -> None:
    m1 = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    m2 = await seed.mentor("Ustadz Hasan", Gender.IKHWAN)
    mentee = await seed.mentee("Abdullah", Gender.IKHWAN)
    g1 = await seed.group("Tahfidz A", mentor=m1, mentees=[mentee])
    g2 = await seed.group("Tahfidz B", mentor=m2)

    proposal = await reconciler.propose_attach(g2.id, [mentee.id])
    assert proposal.requires_confirmation
    assert proposal.conflicting[0].current_group_name == "Tahfidz A"

    with pytest.raises(ConflictingReassignError) as excinfo:
        await reconciler.commit_attach(proposal)
    assert excinfo.value.to_payload()["conflicts"][0]["current_group_id"] == g1.id
    assert await _group_of(store, mentee.id) == g1.id

    change = await reconciler.commit_attach(proposal, confirmed_ids=[mentee.id])

    assert change.changed_count == 1
    assert await _group_of(store, mentee.id) == g2.id
    assert await store.list_group_mentees(g1.id) == []


async def test_partial_confirmation_writes_nothing(seed, store, reconciler) -> None:
    m1 = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    m2 = await seed.mentor("Ustadz Hasan", Gender.IKHWAN)
    a = await seed.mentee("Abdullah", Gender.IKHWAN)
    b = await seed.mentee("Bilal", Gender.IKHWAN)
    c = await seed.mentee("Chairul", Gender.IKHWAN)
    g1 = await seed.group("Tahfidz A", mentor=m1, mentees=[a, b])
    g2 = await seed.group("Tahfidz B", mentor=m2)

    with pytest.raises(ConflictingReassignError):
        await reconciler.attach(g2.id, [a.id, b.id, c.id], confirmed_ids=[a.id])

    assert await _group_of(store, a.id) == g1.id
    assert await _group_of(store, c.id) is None


async def test_commit_rechecks_conflicts_created_after_proposal(seed, store, reconciler) -> None:
    m1 = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    m2 = await seed.mentor("Ustadz Hasan", Gender.IKHWAN)
    mentee = await seed.mentee("Abdullah", Gender.IKHWAN)
    g1 = await seed.group("Tahfidz A", mentor=m1)
    g2 = await seed.group("Tahfidz B", mentor=m2)

    proposal = await reconciler.propose_attach(g2.id, [mentee.id])
    assert not proposal.requires_confirmation
    await reconciler.attach(g1.id, [mentee.id])

    with pytest.raises(ConflictingReassignError):
        await reconciler.commit_attach(proposal)
    assert await _group_of(store, mentee.id) == g1.id


async def test_gender_mismatch_is_rejected(seed, store, reconciler) -> None:
    mentor = await seed.mentor("Ustadzah Aisyah", Gender.AKHWAT)
    group = await seed.group("Kajian Akhwat", mentor=mentor)
    akhwat = await seed.mentee("Fatimah", Gender.AKHWAT)
    ikhwan = await seed.mentee("Bilal", Gender.IKHWAN)

    with pytest.raises(GenderMismatchError) as excinfo:
        await reconciler.attach(group.id, [akhwat.id, ikhwan.id])

    assert excinfo.value.mentee_ids == [ikhwan.id]
    assert await store.list_group_mentees(group.id) == []


async def test_group_without_gender_cannot_take_mentees(seed, reconciler) -> None:
    group = await seed.group("Belum Ada Mentor")
    mentee = await seed.mentee("Bilal", Gender.IKHWAN)

    with pytest.raises(MembershipValidationError) as excinfo:
        await reconciler.attach(group.id, [mentee.id])

    assert "gender" in excinfo.value.errors


async def test_attach_unknown_mentee_is_not_found(seed, reconciler) -> None:
    mentor = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    group = await seed.group("Tahfidz A", mentor=mentor)

    with pytest.raises(NotFoundError) as excinfo:
        await reconciler.attach(group.id, [999])

    assert excinfo.value.ids == [999]


async def test_attach_requires_at_least_one_mentee(seed, reconciler) -> None:
    mentor = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    group = await seed.group("Tahfidz A", mentor=mentor)

    with pytest.raises(MembershipValidationError):
        await reconciler.attach(group.id, [])


async def test_detach_twice_is_idempotent(seed, store, reconciler) -> None:
    mentor = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    mentee = await seed.mentee("Abdullah", Gender.IKHWAN)
    group = await seed.group("Tahfidz A", mentor=mentor, mentees=[mentee])

    first = await reconciler.detach(group.id, [mentee.id])
    second = await reconciler.detach(group.id, [mentee.id])

    assert first.changed_count == 1
    assert second.changed_count == 0
    assert await _group_of(store, mentee.id) is None
    assert len(await store.list_mentee_history(mentee.id)) == 1


async def test_detach_ignores_mentees_of_other_groups(seed, store, reconciler) -> None:
    m1 = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    m2 = await seed.mentor("Ustadz Hasan", Gender.IKHWAN)
    mentee = await seed.mentee("Abdullah", Gender.IKHWAN)
    g1 = await seed.group("Tahfidz A", mentor=m1, mentees=[mentee])
    g2 = await seed.group("Tahfidz B", mentor=m2)

    change = await reconciler.detach(g2.id, [mentee.id])

    assert change.changed_count == 0
    assert await _group_of(store, mentee.id) == g1.id


async def test_move_between_groups(seed, store, reconciler) -> None:
    m1 = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    m2 = await seed.mentor("Ustadz Hasan", Gender.IKHWAN)
    a = await seed.mentee("Abdullah", Gender.IKHWAN)
    b = await seed.mentee("Bilal", Gender.IKHWAN)
    g1 = await seed.group("Tahfidz A", mentor=m1, mentees=[a, b])
    g2 = await seed.group("Tahfidz B", mentor=m2)

    change = await reconciler.move(g1.id, g2.id, [a.id])

    assert change.changed_count == 1
    assert [m.id for m in await store.list_group_mentees(g1.id)] == [b.id]
    assert [m.id for m in await store.list_group_mentees(g2.id)] == [a.id]
    history = await store.list_mentee_history(a.id)
    assert [(h.from_group_id, h.to_group_id) for h in history] == [(g1.id, g2.id)]


async def test_move_rejects_mentees_outside_source(seed, store, reconciler) -> None:
    m1 = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    m2 = await seed.mentor("Ustadz Hasan", Gender.IKHWAN)
    a = await seed.mentee("Abdullah", Gender.IKHWAN)
    stray = await seed.mentee("Bilal", Gender.IKHWAN)
    g1 = await seed.group("Tahfidz A", mentor=m1, mentees=[a])
    g2 = await seed.group("Tahfidz B", mentor=m2)

    with pytest.raises(MembershipValidationError) as excinfo:
        await reconciler.move(g1.id, g2.id, [a.id, stray.id])

    assert len(excinfo.value.errors["mentee_ids"]) == 1
    assert await _group_of(store, a.id) == g1.id


async def test_move_to_same_group_is_rejected(seed, reconciler) -> None:
    mentor = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    a = await seed.mentee("Abdullah", Gender.IKHWAN)
    group = await seed.group("Tahfidz A", mentor=mentor, mentees=[a])

    with pytest.raises(MembershipValidationError):
        await reconciler.move(group.id, group.id, [a.id])


async def test_move_to_trashed_group_is_not_found(seed, store, reconciler, lifecycle) -> None:
    m1 = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    m2 = await seed.mentor("Ustadz Hasan", Gender.IKHWAN)
    a = await seed.mentee("Abdullah", Gender.IKHWAN)
    g1 = await seed.group("Tahfidz A", mentor=m1, mentees=[a])
    g2 = await seed.group("Tahfidz B", mentor=m2)
    await lifecycle.soft_delete(g2.id)

    with pytest.raises(NotFoundError):
        await reconciler.move(g1.id, g2.id, [a.id])


async def test_bulk_move_collects_mentees_from_several_groups(seed, store, reconciler) -> None:
    m1 = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    m2 = await seed.mentor("Ustadz Hasan", Gender.IKHWAN)
    m3 = await seed.mentor("Ustadz Umar", Gender.IKHWAN)
    a = await seed.mentee("Abdullah", Gender.IKHWAN)
    b = await seed.mentee("Bilal", Gender.IKHWAN)
    c = await seed.mentee("Chairul", Gender.IKHWAN)
    await seed.group("Tahfidz A", mentor=m1, mentees=[a])
    await seed.group("Tahfidz B", mentor=m2, mentees=[b])
    target = await seed.group("Tahfidz C", mentor=m3)

    change = await reconciler.bulk_move(target.id, [a.id, b.id, c.id])

    assert change.changed_count == 3
    assert {m.id for m in await store.list_group_mentees(target.id)} == {a.id, b.id, c.id}


async def test_history_lists_every_move_in_order(seed, reconciler) -> None:
    m1 = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    m2 = await seed.mentor("Ustadz Hasan", Gender.IKHWAN)
    a = await seed.mentee("Abdullah", Gender.IKHWAN)
    g1 = await seed.group("Tahfidz A", mentor=m1)
    g2 = await seed.group("Tahfidz B", mentor=m2)

    await reconciler.attach(g1.id, [a.id])
    await reconciler.move(g1.id, g2.id, [a.id])
    await reconciler.detach(g2.id, [a.id])

    history = await reconciler.history(a.id)
    assert [(h.from_group_id, h.to_group_id) for h in history] == [
        (None, g1.id),
        (g1.id, g2.id),
        (g2.id, None),
    ]
