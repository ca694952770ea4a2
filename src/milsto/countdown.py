"""Countdown formatting and the shared once-per-second refresh tick."""
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Callable, Dict, Optional

from .models import utcnow

logger = logging.getLogger(__name__)

TICK_INTERVAL = 1.0

TickCallback = Callable[[datetime], None]


def remaining_seconds(target: datetime, now: datetime) -> int:
    return max(0, int((target - now).total_seconds()))


def countdown(target: datetime, now: datetime) -> str:
    """Format the time left until ``target`` as ``DDd HHh MMm SSs``.

    Targets in the past read as all zeros. Days are padded to two digits
    but never truncated.
    """
    total = remaining_seconds(target, now)
    days, rest = divmod(total, 86_400)
    hours, rest = divmod(rest, 3_600)
    minutes, seconds = divmod(rest, 60)
    return f"{days:02d}d {hours:02d}h {minutes:02d}m {seconds:02d}s"


class CountdownTicker:
    """One timer that hands the same ``now`` sample to every visible row.

    Rows subscribe when they come into view and call the returned token's
    ``unsubscribe`` when they leave. ``run`` stops on its own once nobody is
    listening.
    """

    def __init__(
        self,
        interval: float = TICK_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._subscribers: Dict[int, TickCallback] = {}
        self._next_token = 0
        self._stopped = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: TickCallback) -> int:
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback
        return token

    def unsubscribe(self, token: int) -> None:
        self._subscribers.pop(token, None)

    def stop(self) -> None:
        self._stopped = True

    def tick(self, now: Optional[datetime] = None) -> datetime:
        now = now or self._clock()
        for callback in list(self._subscribers.values()):
            callback(now)
        return now

    def run(self, ticks: Optional[int] = None) -> int:
        """Broadcast every ``interval`` seconds; returns the number of ticks sent."""
        self._stopped = False
        sent = 0
        while self._subscribers and not self._stopped:
            if ticks is not None and sent >= ticks:
                break
            self.tick()
            sent += 1
            if ticks is not None and sent >= ticks:
                break
            self._sleep(self.interval)
        logger.debug("Countdown ticker stopped after %d tick(s)", sent)
        return sent
