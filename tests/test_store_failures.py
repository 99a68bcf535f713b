"""Behaviour when the membership store cannot complete a call."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from liqo.application.use_cases import GroupLifecycleManager, MembershipReconciler
from liqo.domain.errors import StoreUnavailableError
from liqo.domain.models import GroupState
from liqo.models.user import Gender


@pytest.fixture
def failing_commit(monkeypatch):
    async def commit(self):
        raise OperationalError("COMMIT", None, Exception("database is locked"))

    def apply() -> None:
        monkeypatch.setattr(AsyncSession, "commit", commit)

    yield apply
    monkeypatch.undo()


async def test_attach_rolls_back_when_commit_fails(seed, store, reconciler, failing_commit) -> None:
    m1 = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    m2 = await seed.mentor("Ustadz Hasan", Gender.IKHWAN)
    a = await seed.mentee("Abdullah", Gender.IKHWAN)
    b = await seed.mentee("Bilal", Gender.IKHWAN)
    g1 = await seed.group("Tahfidz A", mentor=m1, mentees=[a])
    g2 = await seed.group("Tahfidz B", mentor=m2)
    a_id, b_id, g1_id, g2_id = a.id, b.id, g1.id, g2.id

    failing_commit()
    with pytest.raises(StoreUnavailableError) as excinfo:
        await reconciler.attach(g2_id, [a_id, b_id], confirmed_ids=[a_id])

    assert excinfo.value.retryable is True
    mentees = {mentee.id: mentee.group_id for mentee in await store.get_mentees([a_id, b_id])}
    assert mentees == {a_id: g1_id, b_id: None}
    assert await store.list_mentee_history(b_id) == []


async def test_move_rolls_back_when_commit_fails(seed, store, reconciler, failing_commit) -> None:
    m1 = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    m2 = await seed.mentor("Ustadz Hasan", Gender.IKHWAN)
    a = await seed.mentee("Abdullah", Gender.IKHWAN)
    b = await seed.mentee("Bilal", Gender.IKHWAN)
    g1 = await seed.group("Tahfidz A", mentor=m1, mentees=[a, b])
    g2 = await seed.group("Tahfidz B", mentor=m2)
    a_id, b_id, g1_id, g2_id = a.id, b.id, g1.id, g2.id

    failing_commit()
    with pytest.raises(StoreUnavailableError):
        await reconciler.move(g1_id, g2_id, [a_id, b_id])

    assert {mentee.group_id for mentee in await store.get_mentees([a_id, b_id])} == {g1_id}
    assert await store.list_group_mentees(g2_id) == []


async def test_attach_propagates_store_outage_without_writing(seed, store, flaky_store) -> None:
    mentor = await seed.mentor("Ustadz Ahmad", Gender.IKHWAN)
    a = await seed.mentee("Abdullah", Gender.IKHWAN)
    group = await seed.group("Tahfidz A", mentor=mentor)
    reconciler = MembershipReconciler(flaky_store("attach_mentees", lambda call, *args, **kwargs: True))

    with pytest.raises(StoreUnavailableError):
        await reconciler.attach(group.id, [a.id])

    assert await store.list_group_mentees(group.id) == []


async def test_bulk_soft_delete_isolates_store_outage(seed, store, flaky_store) -> None:
    groups = []
    for index in range(1, 4):
        mentor = await seed.mentor(f"Ustadz {index}", Gender.IKHWAN)
        groups.append(await seed.group(f"Tahfidz {index}", mentor=mentor))
    first, broken, last = (group.id for group in groups)
    lifecycle = GroupLifecycleManager(
        flaky_store("soft_delete_group", lambda call, group_id: group_id == broken)
    )

    result = await lifecycle.soft_delete_many([first, broken, last])

    assert result.succeeded == [first, last]
    assert [(failure.id, failure.code) for failure in result.failed] == [
        (broken, "store_unavailable")
    ]
    assert (await store.get_group(broken)).state == GroupState.ACTIVE
    assert (await store.get_group(first, include_trashed=True)).state == GroupState.SOFT_DELETED
