from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime

import pytest
from sqlalchemy import func, select

from sessionstore.exceptions import ConflictError, UnsupportedEventError
from sessionstore.models.user_daily_usage import UserDailyUsage
from sessionstore.services.usage_service import UsageService


def _row_count(store, user_id: int) -> int:
    with store.transaction() as db:
        return db.scalar(select(func.count(UserDailyUsage.id)).where(UserDailyUsage.user_id == user_id))


def test_first_event_creates_zeroed_row(service, make_user):
    user_id = make_user()

    service.usage.record_event(user_id, "image")

    usage = service.usage.get_daily_usage(user_id)
    assert usage.date == date(2026, 3, 14)
    assert usage.count_image_msg == 1
    assert usage.count_text_msg == 0
    assert usage.is_online is False
    assert usage.connected_at is None
    assert usage.disconnected_at is None


def test_repeated_events_reuse_the_same_row(service, store, make_user):
    user_id = make_user()

    service.usage.record_event(user_id, "text")
    service.usage.record_event(user_id, "text")

    assert _row_count(store, user_id) == 1
    assert service.usage.get_daily_usage(user_id).count_text_msg == 2


@pytest.mark.parametrize(
    "kind", ["text", "image", "voice", "video", "sticker", "location", "contact", "document"]
)
def test_each_message_kind_has_its_own_counter(service, make_user, kind):
    user_id = make_user()

    service.usage.record_event(user_id, kind)

    usage = service.usage.get_daily_usage(user_id)
    assert getattr(usage, f"count_{kind}_msg") == 1


def test_concurrent_increments_are_not_lost(service, store, make_user):
    user_id = make_user()
    calls = 60

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(lambda _: service.usage.record_event(user_id, "text"), range(calls)))

    assert _row_count(store, user_id) == 1
    assert service.usage.get_daily_usage(user_id).count_text_msg == calls


def test_concurrent_mixed_events_on_a_new_day(service, store, make_user):
    user_id = make_user()
    events = ["text", "image", "online", "voice"] * 15

    with ThreadPoolExecutor(max_workers=12) as pool:
        list(pool.map(lambda event: service.usage.record_event(user_id, event), events))

    usage = service.usage.get_daily_usage(user_id)
    assert _row_count(store, user_id) == 1
    assert usage.count_text_msg == 15
    assert usage.count_image_msg == 15
    assert usage.count_voice_msg == 15
    assert usage.is_online is True


def test_day_rollover_starts_a_new_row(service, clock, make_user):
    user_id = make_user()
    clock.now = datetime(2026, 3, 14, 23, 59, 59)

    service.usage.record_event(user_id, "text")
    clock.advance(seconds=2)
    service.usage.record_event(user_id, "text")

    rows = service.usage.list_daily_usage(user_id)
    assert [row.date for row in rows] == [date(2026, 3, 14), date(2026, 3, 15)]
    assert [row.count_text_msg for row in rows] == [1, 1]


def test_online_then_disconnected_keeps_both_timestamps(service, clock, make_user):
    user_id = make_user()

    service.usage.record_event(user_id, "online")
    connected_at = clock.now
    clock.advance(hours=2)
    service.usage.record_event(user_id, "disconnected")

    usage = service.usage.get_daily_usage(user_id)
    assert usage.connected_at == connected_at
    assert usage.disconnected_at == clock.now
    assert usage.is_online is False


def test_reconnect_after_disconnect_is_online(service, clock, make_user):
    user_id = make_user()

    service.usage.record_event(user_id, "disconnected")
    clock.advance(minutes=5)
    service.usage.record_event(user_id, "online")

    usage = service.usage.get_daily_usage(user_id)
    assert usage.is_online is True
    assert usage.disconnected_at is not None
    assert usage.connected_at == clock.now


def test_unsupported_event_type_writes_nothing(service, store, make_user):
    user_id = make_user()

    with pytest.raises(UnsupportedEventError) as exc_info:
        service.usage.record_event(user_id, "gif")

    assert exc_info.value.event_type == "gif"
    assert _row_count(store, user_id) == 0


def test_failure_after_find_or_create_rolls_back(service, store, make_user, monkeypatch):
    user_id = make_user()
    real_find_or_create = UsageService._find_or_create

    def failing(db, uid, day):
        real_find_or_create(db, uid, day)
        raise RuntimeError("boom")

    monkeypatch.setattr(UsageService, "_find_or_create", staticmethod(failing))

    with pytest.raises(RuntimeError):
        service.usage.record_event(user_id, "text")

    assert _row_count(store, user_id) == 0


def test_insert_collision_reuses_the_existing_row(service, store, make_user, monkeypatch):
    user_id = make_user()
    service.usage.record_event(user_id, "text")
    existing_id = service.usage.get_daily_usage(user_id).id
    real_lookup = UsageService._lookup
    calls = []

    def stale_first_lookup(db, uid, day, lock=False):
        calls.append(lock)
        # the first read misses as if another writer committed right after it
        if len(calls) == 1:
            return None
        return real_lookup(db, uid, day, lock=lock)

    monkeypatch.setattr(UsageService, "_lookup", staticmethod(stale_first_lookup))

    service.usage.record_event(user_id, "text")

    assert calls == [False, True]
    assert _row_count(store, user_id) == 1
    usage = service.usage.get_daily_usage(user_id)
    assert usage.id == existing_id
    assert usage.count_text_msg == 2


def test_event_for_unknown_user_raises_conflict(service):
    with pytest.raises(ConflictError):
        service.usage.record_event(12345, "text")


def test_events_do_not_touch_lifetime_counters(service, make_user):
    user_id = make_user()

    service.usage.record_event(user_id, "text")

    assert service.reports.get_user_by_id(user_id).count_text_msg == 0


def test_heartbeat_marks_connected_users_online(service, make_user):
    online_east = make_user(instance="east", connected=True)
    online_west = make_user(instance="west", connected=True)
    offline = make_user(connected=False)
    deleted = make_user(connected=True)
    service.sessions.delete_user(deleted)

    failures = service.usage.mark_all_connected_online()

    assert failures == []
    assert service.usage.get_daily_usage(online_east).is_online is True
    assert service.usage.get_daily_usage(online_west).is_online is True
    assert service.usage.get_daily_usage(offline) is None
    assert service.usage.get_daily_usage(deleted) is None


def test_heartbeat_continues_past_a_failing_user(service, make_user, monkeypatch):
    first = make_user(connected=True)
    broken = make_user(connected=True)
    last = make_user(connected=True)
    record_event = service.usage.record_event

    def flaky(user_id, event_type):
        if user_id == broken:
            raise ConflictError("row locked")
        record_event(user_id, event_type)

    monkeypatch.setattr(service.usage, "record_event", flaky)

    failures = service.usage.mark_all_connected_online()

    assert [f.user_id for f in failures] == [broken]
    assert isinstance(failures[0].error, ConflictError)
    assert service.usage.get_daily_usage(first).is_online is True
    assert service.usage.get_daily_usage(last).is_online is True


def test_list_daily_usage_filters_by_range(service, clock, make_user):
    user_id = make_user()
    for day in (10, 11, 12, 13):
        clock.now = datetime(2026, 3, day, 9, 0)
        service.usage.record_event(user_id, "text")

    rows = service.usage.list_daily_usage(user_id, start=date(2026, 3, 11), end=date(2026, 3, 12))

    assert [row.date for row in rows] == [date(2026, 3, 11), date(2026, 3, 12)]
