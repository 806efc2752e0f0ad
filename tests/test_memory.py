from datetime import datetime, timedelta, timezone

import pytest

from scalegate.counts import Count
from scalegate.memory import Counter, CountReader, Memory

NOW = datetime(2024, 6, 26, 12, 0, 0, tzinfo=timezone.utc)
MINUTE = timedelta(minutes=1)
SECOND = timedelta(seconds=1)


def _memory():
    return Memory(clock=lambda: NOW)


def test_current_reflects_increases():
    memory = _memory()
    host = "host1"
    memory.ensure_key(host, MINUTE, SECOND)
    memory.increase(host, 1)
    first = memory.current().counts[host]
    assert first.concurrency == 1
    assert first.rps == 1.0

    memory.increase(host, 1)
    memory.increase(host, 1)
    second = memory.current().counts[host]
    assert second.concurrency == 3
    assert second.rps == 3.0
    assert first != second


def test_memory_is_a_counter():
    memory = _memory()
    assert isinstance(memory, Counter)
    assert isinstance(memory, CountReader)
    counter: Counter = memory
    counter.ensure_key("a", MINUTE, SECOND)
    counter.increase("a", 2)
    assert counter.current().counts == {"a": Count(2, 2.0)}


def test_ensure_key_starts_at_zero():
    memory = _memory()
    memory.ensure_key("a", MINUTE, SECOND)
    assert memory.current().counts == {"a": Count(0, 0.0)}


def test_ensure_key_twice_keeps_state():
    memory = _memory()
    memory.ensure_key("a", MINUTE, SECOND)
    memory.increase("a", 2)
    memory.ensure_key("a", MINUTE, SECOND)
    assert memory.current().counts["a"].concurrency == 2


def test_increase_unknown_host_raises():
    memory = _memory()
    with pytest.raises(KeyError):
        memory.increase("missing", 1)
    assert memory.current().counts == {}


def test_decrease_clamps_at_zero():
    memory = _memory()
    memory.ensure_key("a", MINUTE, SECOND)
    memory.increase("a", 1)
    memory.decrease("a", 5)
    assert memory.current().counts["a"].concurrency == 0


def test_decrease_unknown_host_is_ignored():
    memory = _memory()
    memory.decrease("missing", 1)
    assert memory.current().counts == {}


def test_decrease_keeps_rate():
    memory = _memory()
    memory.ensure_key("a", MINUTE, SECOND)
    memory.increase("a", 4)
    before = memory.current().counts["a"].rps
    memory.decrease("a", 4)
    after = memory.current().counts["a"]
    assert after.concurrency == 0
    assert after.rps == before


def test_remove_key():
    memory = _memory()
    memory.ensure_key("a", MINUTE, SECOND)
    assert memory.remove_key("a") is True
    assert memory.remove_key("a") is False
    assert memory.current().counts == {}


def test_update_buckets_with_new_settings_resets_rate():
    memory = _memory()
    memory.ensure_key("a", MINUTE, SECOND)
    memory.increase("a", 3)
    memory.update_buckets("a", 2 * MINUTE, SECOND)
    count = memory.current().counts["a"]
    assert count.concurrency == 3
    assert count.rps == 0.0


def test_update_buckets_with_same_settings_keeps_rate():
    memory = _memory()
    memory.ensure_key("a", MINUTE, SECOND)
    memory.increase("a", 3)
    memory.update_buckets("a", MINUTE, SECOND)
    assert memory.current().counts["a"] == Count(3, 3.0)


def test_update_buckets_adds_missing_host():
    memory = _memory()
    memory.update_buckets("new", MINUTE, SECOND)
    assert memory.current().counts == {"new": Count(0, 0.0)}