import random
from datetime import datetime, timedelta, timezone
from typing import Optional

def calculate_next_attempt(
    attempts: int,
    base_delay_seconds: float = 2.0,
    max_delay_seconds: float = 300.0,
    jitter: bool = True,
    now: Optional[datetime] = None,
) -> datetime:
    """
    When a notification that has failed `attempts` times may be tried again.

    Exponential backoff:
        delay = min(base * 2^(attempts - 1), max_delay)
    so the first failure waits `base`, the second twice that, and so on.
    Jitter adds up to 10% on top so a burst of failures does not retry in lockstep.
    """
    now = now or datetime.now(timezone.utc)

    # 2^20 base delays is far past any sensible cap
    exponent = min(max(attempts - 1, 0), 20)
    delay = min(base_delay_seconds * (2 ** exponent), max_delay_seconds)

    if jitter:
        delay += random.uniform(0, delay * 0.1)

    return now + timedelta(seconds=delay)
