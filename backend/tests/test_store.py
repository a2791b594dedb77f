"""Tests for the availability store."""

from datetime import timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from gardenbook.database import run_with_retry
from gardenbook.errors import InvalidRequest, StoreUnavailable
from gardenbook.services.slots import AvailabilityStore, SlotsRedisStore

from conftest import DAY, PROVIDER, FakeRedis


class TestSetAvailability:
    def test_set_available(self, store):
        store.set_available(PROVIDER, DAY, [8, 9, 10])
        assert store.get_blocks(PROVIDER, DAY) == {8, 9, 10}

    def test_set_available_is_idempotent(self, store):
        store.set_available(PROVIDER, DAY, [8, 9, 10])
        once = store.get_blocks(PROVIDER, DAY)
        store.set_available(PROVIDER, DAY, [8, 9, 10])
        assert store.get_blocks(PROVIDER, DAY) == once

    def test_set_unavailable_is_idempotent(self, store):
        store.set_available(PROVIDER, DAY, [8, 9, 10])
        store.set_unavailable(PROVIDER, DAY, [9])
        store.set_unavailable(PROVIDER, DAY, [9])
        assert store.get_blocks(PROVIDER, DAY) == {8, 10}

    def test_unavailable_hours_without_rows_stay_absent(self, store):
        store.set_unavailable(PROVIDER, DAY, [14])
        assert not store.has_schedule(PROVIDER, DAY)

    def test_providers_are_independent(self, store):
        store.set_available(PROVIDER, DAY, [9])
        store.set_available("gardener-2", DAY, [15])
        assert store.get_blocks(PROVIDER, DAY) == {9}
        assert store.get_blocks("gardener-2", DAY) == {15}

    def test_invalid_hour_writes_nothing(self, store):
        with pytest.raises(InvalidRequest):
            store.set_available(PROVIDER, DAY, [9, 24])
        assert store.get_blocks(PROVIDER, DAY) == set()

    def test_apply_changes_sets_and_unsets_together(self, store):
        store.set_available(PROVIDER, DAY, [8, 9])
        store.apply_changes(PROVIDER, DAY, available=[10, 11], unavailable=[8])
        assert store.get_blocks(PROVIDER, DAY) == {9, 10, 11}

    def test_apply_changes_rejects_before_writing(self, store):
        store.set_available(PROVIDER, DAY, [9])
        with pytest.raises(InvalidRequest):
            store.apply_changes(PROVIDER, DAY, available=[10], unavailable=[30])
        assert store.get_blocks(PROVIDER, DAY) == {9}

    def test_apply_changes_rejects_overlap(self, store):
        with pytest.raises(InvalidRequest):
            store.apply_changes(PROVIDER, DAY, available=[10, 11], unavailable=[11])
        assert not store.has_schedule(PROVIDER, DAY)

    def test_apply_changes_keeps_held_hours_closed(self, store):
        store.set_available(PROVIDER, DAY, [9])
        store.set_unavailable(PROVIDER, DAY, [9])
        store.apply_changes(PROVIDER, DAY, available=[9, 10], held_hours=[9])
        assert store.get_blocks(PROVIDER, DAY) == {10}


class TestRangeRead:
    def test_range_groups_by_day(self, store):
        store.set_available(PROVIDER, DAY, [9, 10])
        store.set_available(PROVIDER, DAY + timedelta(days=2), [14])
        store.set_available(PROVIDER, DAY + timedelta(days=3), [8])
        store.set_unavailable(PROVIDER, DAY + timedelta(days=3), [8])

        blocks = store.get_blocks_range(PROVIDER, DAY, DAY + timedelta(days=3))

        assert blocks == {
            DAY: {9, 10},
            DAY + timedelta(days=2): {14},
            DAY + timedelta(days=3): set(),
        }

    def test_range_is_one_query(self, store, engine):
        store.set_available(PROVIDER, DAY, [9])
        statements = []

        @event.listens_for(engine, "before_cursor_execute")
        def count(conn, cursor, statement, *args):
            statements.append(statement)

        store.get_blocks_range(PROVIDER, DAY, DAY + timedelta(days=30))
        event.remove(engine, "before_cursor_execute", count)
        assert len([s for s in statements if s.lstrip().upper().startswith("SELECT")]) == 1

    def test_available_dates(self, store):
        store.set_available(PROVIDER, DAY, [9])
        store.set_available(PROVIDER, DAY + timedelta(days=1), [9])
        store.set_unavailable(PROVIDER, DAY + timedelta(days=1), [9])
        assert store.available_dates(PROVIDER, DAY, DAY + timedelta(days=5)) == [DAY]

    def test_inverted_range_rejected(self, store):
        with pytest.raises(InvalidRequest):
            store.get_blocks_range(PROVIDER, DAY, DAY - timedelta(days=1))


class TestDefaultSchedule:
    def test_seeds_eight_to_seventeen(self, store):
        assert store.apply_default_schedule(PROVIDER, DAY) is True
        assert store.get_blocks(PROVIDER, DAY) == set(range(8, 18))

    def test_existing_day_untouched(self, store):
        store.set_available(PROVIDER, DAY, [20])
        assert store.apply_default_schedule(PROVIDER, DAY) is False
        assert store.get_blocks(PROVIDER, DAY) == {20}

    def test_range_seeds_only_empty_days(self, store):
        store.set_available(PROVIDER, DAY + timedelta(days=1), [20])
        seeded = store.apply_default_schedule_range(PROVIDER, DAY, 3)
        assert seeded == [DAY, DAY + timedelta(days=2)]


class TestReplaceAndClear:
    def test_replace_day(self, store):
        store.set_available(PROVIDER, DAY, [8, 9, 10])
        store.replace_day(PROVIDER, DAY, [10, 11])
        assert store.get_blocks(PROVIDER, DAY) == {10, 11}

    def test_replace_keeps_held_hours_unavailable(self, store):
        store.replace_day(PROVIDER, DAY, [9, 10, 11], held_hours=[10])
        assert store.get_blocks(PROVIDER, DAY) == {9, 11}

    def test_clear_day_deletes_rows(self, store):
        store.set_available(PROVIDER, DAY, [8, 9])
        assert store.clear_day(PROVIDER, DAY) == 2
        assert not store.has_schedule(PROVIDER, DAY)


class TestCacheInvalidation:
    def test_write_drops_cached_starts(self, db, config):
        cache = SlotsRedisStore(FakeRedis(), config)
        store = AvailabilityStore(db, config, cache)
        cache.store_start_hours(PROVIDER, DAY, 2, [9])
        cache.store_start_hours(PROVIDER, DAY, 1, [9, 10])

        store.set_available(PROVIDER, DAY, [11])

        assert cache.get_start_hours(PROVIDER, DAY, 2) is None
        assert cache.get_start_hours(PROVIDER, DAY, 1) is None

    def test_empty_list_is_a_cached_value(self, config):
        cache = SlotsRedisStore(FakeRedis(), config)
        cache.store_start_hours(PROVIDER, DAY, 3, [])
        assert cache.get_start_hours(PROVIDER, DAY, 3) == []


class TestStoreErrors:
    def test_transient_error_is_retried(self, db):
        calls = []

        def op():
            calls.append(1)
            if len(calls) < 2:
                raise OperationalError("UPDATE availability_blocks", {}, Exception("database is locked"))
            return "ok"

        assert run_with_retry(db, op, attempts=3, backoff=0) == "ok"
        assert len(calls) == 2

    def test_persistent_error_becomes_store_unavailable(self, db):
        calls = []

        def op():
            calls.append(1)
            raise OperationalError("UPDATE availability_blocks", {}, Exception("disk I/O error"))

        with pytest.raises(StoreUnavailable):
            run_with_retry(db, op, attempts=3, backoff=0)
        assert len(calls) == 3
