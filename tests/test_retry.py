from datetime import datetime, timedelta, timezone

from talento_local.domain.retry import calculate_next_attempt

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def test_delay_doubles_per_attempt():
    delays = [
        calculate_next_attempt(attempts, base_delay_seconds=2, jitter=False, now=NOW) - NOW
        for attempts in (1, 2, 3, 4)
    ]
    assert delays == [timedelta(seconds=s) for s in (2, 4, 8, 16)]


def test_delay_is_capped():
    next_at = calculate_next_attempt(30, base_delay_seconds=2, max_delay_seconds=300, jitter=False, now=NOW)
    assert next_at - NOW == timedelta(seconds=300)


def test_jitter_adds_at_most_ten_percent():
    for _ in range(20):
        delay = calculate_next_attempt(1, base_delay_seconds=10, now=NOW) - NOW
        assert timedelta(seconds=10) <= delay <= timedelta(seconds=11)


def test_defaults_to_current_utc_time():
    before = datetime.now(timezone.utc)
    next_at = calculate_next_attempt(1, base_delay_seconds=0)
    assert next_at.tzinfo is not None
    assert next_at >= before
