"""Tests for provider settings and the weekly recurring template."""

from datetime import timedelta

import pytest

from gardenbook.errors import InvalidRequest
from gardenbook.services.slots import (
    AvailabilityStore,
    SlotAllocator,
    SlotsRedisStore,
    WeeklyWindow,
    generate_recurring_days,
    get_provider_settings,
    get_weekly_template,
    group_windows,
    save_weekly_template,
    update_provider_settings,
)

from conftest import DAY, PROVIDER, FakeRedis, book

# DAY is a Monday
WEEKDAYS = (0, 1, 2, 3, 4)


class TestProviderSettings:
    def test_defaults_without_row(self, db, config):
        settings = get_provider_settings(db, PROVIDER, config)
        assert settings.min_gap_hours == config.min_gap_hours
        assert settings.weeks_to_maintain == config.recurring_weeks
        assert settings.min_gap_override is None

    def test_override_and_reset(self, db, config):
        settings = update_provider_settings(db, PROVIDER, 2, 3, config)
        assert (settings.min_gap_hours, settings.weeks_to_maintain) == (2, 3)
        assert settings.min_gap_override == 2

        settings = update_provider_settings(db, PROVIDER, None, None, config)
        assert settings.min_gap_hours == config.min_gap_hours
        assert settings.weeks_override is None

    @pytest.mark.parametrize("gap,weeks", [(-1, None), (None, 0), (None, 13)])
    def test_invalid_values_rejected(self, db, config, gap, weeks):
        with pytest.raises(InvalidRequest):
            update_provider_settings(db, PROVIDER, gap, weeks, config)
        assert get_provider_settings(db, PROVIDER, config).min_gap_override is None

    def test_gap_change_drops_cached_starts(self, db, store, config, lifecycle):
        cache = SlotsRedisStore(FakeRedis(), config)
        store.set_available(PROVIDER, DAY, list(range(8, 16)))
        book(lifecycle, 10, 2)
        assert SlotAllocator(db, config, cache).valid_start_hours(PROVIDER, DAY, 1) == [8, 9, 12, 13, 14, 15]

        update_provider_settings(db, PROVIDER, 1, None, config, cache)

        assert cache.get_start_hours(PROVIDER, DAY, 1) is None
        assert SlotAllocator(db, config, cache).valid_start_hours(PROVIDER, DAY, 1) == [8, 13, 14, 15]


class TestWeeklyTemplate:
    def test_save_and_read(self, db):
        save_weekly_template(db, PROVIDER, [
            WeeklyWindow(WEEKDAYS, 9, 13),
            WeeklyWindow((5,), 10, 12),
        ])
        template = get_weekly_template(db, PROVIDER)
        assert template[0] == [9, 10, 11, 12]
        assert template[5] == [10, 11]
        assert 6 not in template

    def test_save_replaces(self, db):
        save_weekly_template(db, PROVIDER, [WeeklyWindow(WEEKDAYS, 9, 13)])
        save_weekly_template(db, PROVIDER, [WeeklyWindow((2,), 15, 17)])
        assert get_weekly_template(db, PROVIDER) == {2: [15, 16]}

    def test_overlapping_windows_merge(self, db):
        save_weekly_template(db, PROVIDER, [
            WeeklyWindow((0,), 8, 11),
            WeeklyWindow((0,), 10, 12),
        ])
        assert get_weekly_template(db, PROVIDER) == {0: [8, 9, 10, 11]}

    def test_group_windows(self):
        windows = group_windows({0: [9, 10, 14], 1: [9, 10], 2: [14]})
        assert windows == [
            WeeklyWindow((0, 1), 9, 11),
            WeeklyWindow((0, 2), 14, 15),
        ]

    @pytest.mark.parametrize("window", [
        WeeklyWindow((7,), 9, 10),
        WeeklyWindow((0,), 12, 12),
        WeeklyWindow((0,), 20, 25),
        WeeklyWindow((), 9, 10),
    ])
    def test_invalid_window_writes_nothing(self, db, window):
        save_weekly_template(db, PROVIDER, [WeeklyWindow((1,), 9, 10)])
        with pytest.raises(InvalidRequest):
            save_weekly_template(db, PROVIDER, [window])
        assert get_weekly_template(db, PROVIDER) == {1: [9]}


class TestGenerateRecurringDays:
    def test_seeds_matching_weekdays(self, db, store):
        save_weekly_template(db, PROVIDER, [WeeklyWindow(WEEKDAYS, 9, 12)])

        seeded = generate_recurring_days(store, PROVIDER, DAY, weeks=2)

        assert len(seeded) == 10
        assert all(dt.weekday() < 5 for dt in seeded)
        assert store.get_blocks(PROVIDER, DAY) == {9, 10, 11}
        assert store.get_blocks(PROVIDER, DAY + timedelta(days=5)) == set()

    def test_days_with_rows_are_untouched(self, db, store):
        store.set_available(PROVIDER, DAY, [15])
        store.set_available(PROVIDER, DAY + timedelta(days=1), [8])
        store.set_unavailable(PROVIDER, DAY + timedelta(days=1), [8])
        save_weekly_template(db, PROVIDER, [WeeklyWindow(WEEKDAYS, 9, 12)])

        seeded = generate_recurring_days(store, PROVIDER, DAY, weeks=1)

        assert DAY not in seeded
        assert DAY + timedelta(days=1) not in seeded
        assert store.get_blocks(PROVIDER, DAY) == {15}
        assert store.get_blocks(PROVIDER, DAY + timedelta(days=1)) == set()
        assert len(seeded) == 3

    def test_is_idempotent(self, db, store):
        save_weekly_template(db, PROVIDER, [WeeklyWindow(WEEKDAYS, 9, 12)])
        generate_recurring_days(store, PROVIDER, DAY, weeks=1)
        assert generate_recurring_days(store, PROVIDER, DAY, weeks=1) == []

    def test_weeks_default_to_provider_setting(self, db, store, config):
        update_provider_settings(db, PROVIDER, None, 3, config)
        save_weekly_template(db, PROVIDER, [WeeklyWindow((0,), 9, 10)])
        seeded = generate_recurring_days(store, PROVIDER, DAY)
        assert seeded == [DAY, DAY + timedelta(days=7), DAY + timedelta(days=14)]

    def test_empty_template_seeds_nothing(self, store):
        assert generate_recurring_days(store, PROVIDER, DAY, weeks=2) == []

    def test_seeded_days_drop_cached_starts(self, db, config):
        cache = SlotsRedisStore(FakeRedis(), config)
        store = AvailabilityStore(db, config, cache)
        assert SlotAllocator(db, config, cache).valid_start_hours(PROVIDER, DAY, 1) == []

        save_weekly_template(db, PROVIDER, [WeeklyWindow((0,), 9, 11)])
        generate_recurring_days(store, PROVIDER, DAY, weeks=1)

        assert SlotAllocator(db, config, cache).valid_start_hours(PROVIDER, DAY, 1) == [9, 10]
