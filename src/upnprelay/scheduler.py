"""
Module providing the rate limit on sweeping the cache and rediscovering devices.
"""

import time
from threading import Lock
from typing import Callable

from upnprelay.config import DEFAULT_SWEEP_INTERVAL


class DiscoveryScheduler:
    """
    Decides when the relay should sweep expired devices and multicast a new discovery request.

    A cycle is due at most once per interval, however many searches arrive. Devices that only announce
    themselves once may therefore take up to one interval to be rediscovered.

    :param interval: Minimum number of seconds between two cycles.
    :param clock: Function returning the current time in seconds.
    """

    _lock: Lock

    def __init__(
        self,
        interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval = interval
        self._clock = clock
        self._lock = Lock()
        self._last_sweep_time: float | None = None

    @property
    def last_sweep_time(self) -> float | None:
        with self._lock:
            return self._last_sweep_time

    def start(self, now: float | None = None):
        """
        Record the start time as the last cycle. The relay sends its first discovery request unconditionally.
        """
        with self._lock:
            self._last_sweep_time = self._clock() if now is None else now

    def try_begin_sweep(self, now: float | None = None) -> bool:
        """
        Check whether a cycle is due and, if so, claim it.

        Only one caller can claim a given cycle, even when called from several threads at once.

        :return: True if the caller should run a cycle now.
        """
        with self._lock:
            if now is None:
                now = self._clock()
            if self._last_sweep_time is not None and now - self._last_sweep_time < self.interval:
                return False
            self._last_sweep_time = now
            return True
