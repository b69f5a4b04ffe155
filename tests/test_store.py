import threading

import pytest

from minikv.notifier import Notifier
from minikv.store import (
    NOT_INTEGER_MESSAGE,
    WRONGTYPE_MESSAGE,
    InMemoryDB,
    NotAnIntegerError,
    StoreError,
    WrongTypeError,
)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock(1000.0)


@pytest.fixture
def wall():
    return FakeClock(1_700_000_000.0)


@pytest.fixture
def db(clock, wall):
    return InMemoryDB(clock=clock, wall_clock=wall)


def test_set_get_round_trip(db):
    db.set("name", "value")
    assert db.get("name") == "value"


def test_get_missing_is_none(db):
    assert db.get("missing") is None


def test_set_with_absolute_expiry_in_future(db, clock, wall):
    now_ms = int(wall() * 1000)
    db.set_with_absolute_expiry("k", "v", now_ms + 500)
    assert db.get("k") == "v"
    clock.advance(0.5)
    assert db.get("k") is None


def test_set_with_absolute_expiry_in_past(db, wall):
    now_ms = int(wall() * 1000)
    db.set_with_absolute_expiry("k", "v", now_ms - 1)
    assert db.get("k") is None


def test_set_clears_expiry(db, clock):
    db.set_with_expiry("k", "old", 10)
    db.set("k", "new")
    clock.advance(100)
    assert db.get("k") == "new"


def test_keys_drops_expired(db, clock):
    db.set("a", "1")
    db.set_with_expiry("b", "2", 10)
    clock.advance(1)
    assert db.keys() == ["a"]


def test_get_on_list_is_wrong_type(db):
    db.rpush("list", ["x"], None)
    with pytest.raises(WrongTypeError) as info:
        db.get("list")
    assert str(info.value) == WRONGTYPE_MESSAGE


def test_incr_missing_key_counts_from_zero(db):
    assert db.incr("counter") == 1
    assert db.incr("counter") == 2
    assert db.get("counter") == "2"


def test_incr_existing_number(db):
    db.set("n", "41")
    assert db.incr("n") == 42


def test_incr_non_integer(db):
    db.set("n", "abc")
    with pytest.raises(NotAnIntegerError) as info:
        db.incr("n")
    assert str(info.value) == NOT_INTEGER_MESSAGE
    assert db.get("n") == "abc"


@pytest.mark.parametrize("text", ["1 ", "1_000", "", "1.5"])
def test_incr_rejects_loose_integer_syntax(db, text):
    db.set("n", text)
    with pytest.raises(NotAnIntegerError):
        db.incr("n")


def test_incr_at_maximum_overflows(db):
    db.set("n", str(2**63 - 1))
    with pytest.raises(NotAnIntegerError):
        db.incr("n")


def test_incr_on_list_is_wrong_type(db):
    db.rpush("list", ["x"], None)
    with pytest.raises(WrongTypeError):
        db.incr("list")


def test_incr_restarts_after_expiry(db, clock):
    db.set_with_expiry("n", "10", 5)
    clock.advance(1)
    assert db.incr("n") == 1


def test_rpush_appends(db):
    assert db.rpush("l", ["a", "b"], None) == 2
    assert db.rpush("l", ["c"], None) == 3
    assert db.lrange("l", 0, -1) == ["a", "b", "c"]


def test_lpush_prepends_each(db):
    assert db.lpush("l", ["a", "b", "c"], None) == 3
    assert db.lrange("l", 0, -1) == ["c", "b", "a"]


def test_push_wakes_waiter(db):
    notifier = Notifier()
    waiting = threading.Event()
    notifier.add_waiter("l", waiting)
    db.rpush("l", ["x"], notifier)
    assert waiting.is_set()


def test_push_onto_string_is_wrong_type(db):
    db.set("s", "v")
    with pytest.raises(WrongTypeError):
        db.lpush("s", ["x"], None)
    with pytest.raises(StoreError):
        db.rpush("s", ["x"], None)


def test_lpop_removes_key_when_empty(db):
    db.rpush("l", ["a", "b"], None)
    assert db.lpop("l") == "a"
    assert db.lpop("l") == "b"
    assert db.lpop("l") is None
    assert "l" not in db.keys()


def test_lpop_on_string_is_wrong_type(db):
    db.set("s", "v")
    with pytest.raises(WrongTypeError):
        db.lpop("s")


def test_lpop_count_more_than_length(db):
    db.rpush("l", ["a", "b"], None)
    assert db.lpop_count("l", 10) == ["a", "b"]
    assert db.keys() == []


def test_lpop_count_partial(db):
    db.rpush("l", ["a", "b", "c"], None)
    assert db.lpop_count("l", 2) == ["a", "b"]
    assert db.llen("l") == 1


def test_lpop_count_zero_keeps_list(db):
    db.rpush("l", ["a"], None)
    assert db.lpop_count("l", 0) == []
    assert db.llen("l") == 1


def test_lpop_count_missing(db):
    assert db.lpop_count("missing", 3) == []


def test_llen(db):
    assert db.llen("l") == 0
    db.rpush("l", ["a", "b"], None)
    assert db.llen("l") == 2


def test_list_expiry(db, clock):
    db.rpush("l", ["a"], None)
    db._entries["l"].expires_at = clock() + 1
    clock.advance(2)
    assert db.llen("l") == 0
    assert db.lrange("l", 0, -1) == []


@pytest.mark.parametrize(
    "start, stop, expected",
    [
        (0, 1, ["a", "b"]),
        (-2, -1, ["d", "e"]),
        (2, 100, ["c", "d", "e"]),
        (-100, 1, ["a", "b"]),
        (3, 1, []),
        (5, 10, []),
    ],
)
def test_lrange(db, start, stop, expected):
    db.rpush("l", ["a", "b", "c", "d", "e"], None)
    assert db.lrange("l", start, stop) == expected


def test_lrange_full_range_returns_all(db):
    items = ["x", "y", "z"]
    db.rpush("l", items, None)
    assert db.lrange("l", 0, -1) == items