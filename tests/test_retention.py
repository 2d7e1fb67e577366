from datetime import timedelta

import pytest

from rental_jobs.infra.store import NOTIFICATIONS, RecordKey
from rental_jobs.services.retention import PurgeInterrupted, purge_notifications
from tests.conftest import InMemoryStore, run


def _seed_notifications(store, now, ages_by_user):
    for user, ages in ages_by_user.items():
        for i, age in enumerate(ages):
            store.seed(
                NOTIFICATIONS, f"{user}-{i}", partition=user,
                userId=user, title="t", message="m", type="general",
                isRead=False, createdAt=now - age,
            )


def test_only_notifications_past_the_cutoff_are_removed(store, now):
    exactly = timedelta(days=30)
    _seed_notifications(store, now, {
        "u1": [timedelta(days=45), exactly + timedelta(seconds=1), exactly, timedelta(days=2)],
        "u2": [timedelta(days=31), timedelta(days=29)],
    })
    before_kept = {n["id"] for n in store.all(NOTIFICATIONS) if n["createdAt"] >= now - exactly}

    result = run(purge_notifications(store, now, retention_days=30))

    remaining = store.all(NOTIFICATIONS)
    assert result.notificationsDeleted == 3
    assert all(n["createdAt"] >= now - exactly for n in remaining)
    assert {n["id"] for n in remaining} == before_kept


def test_large_purges_are_split_in_batches_per_partition(now):
    store = InMemoryStore(batch_limit=3)
    _seed_notifications(store, now, {
        "u1": [timedelta(days=40)] * 7,
        "u2": [timedelta(days=40)] * 2,
    })

    result = run(purge_notifications(store, now, retention_days=30, batch_limit=100))

    assert result.notificationsDeleted == 9
    assert [len(batch) for batch in store.delete_calls] == [3, 3, 1, 2]
    for batch in store.delete_calls:
        assert len({key.partition for key in batch}) == 1
    assert store.all(NOTIFICATIONS) == []


def test_failed_batch_keeps_committed_deletions(now):
    store = InMemoryStore(batch_limit=2)
    _seed_notifications(store, now, {"u1": [timedelta(days=40)] * 5})
    store.fail_delete_after = 1

    with pytest.raises(PurgeInterrupted) as info:
        run(purge_notifications(store, now, retention_days=30))

    assert info.value.deleted == 2
    assert len(store.all(NOTIFICATIONS)) == 3

    # la siguiente ejecución termina lo que quedó
    store.fail_delete_after = None
    result = run(purge_notifications(store, now, retention_days=30))
    assert result.notificationsDeleted == 3
    assert store.all(NOTIFICATIONS) == []


def test_nothing_to_purge(store, now):
    assert run(purge_notifications(store, now)).notificationsDeleted == 0
    assert store.delete_calls == []


def test_store_rejects_oversized_or_mixed_batches(now):
    store = InMemoryStore(batch_limit=2)
    _seed_notifications(store, now, {"u1": [timedelta(days=40)] * 3, "u2": [timedelta(days=40)]})
    keys = [(n["partition"], n["id"]) for n in store.all(NOTIFICATIONS)]

    with pytest.raises(ValueError):
        run(store.delete_batch(NOTIFICATIONS, [RecordKey(*k) for k in keys[:3]]))
    with pytest.raises(ValueError):
        run(store.delete_batch(NOTIFICATIONS, [RecordKey(*keys[0]), RecordKey(*keys[3])]))
