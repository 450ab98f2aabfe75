"""Snowflake-style 64-bit id generation.

Layout (most significant first): 41 bits of milliseconds since the Twitter
epoch, 5 bits machine id, 5 bits node id, 12 bits per-millisecond sequence.
"""

import threading
import time
from typing import Callable, Optional

TWITTER_EPOCH_MS = 1288834974657

_MACHINE_BITS = 5
_NODE_BITS = 5
_SEQUENCE_BITS = 12

_MAX_WORKER = (1 << _MACHINE_BITS) - 1
_SEQUENCE_MASK = (1 << _SEQUENCE_BITS) - 1

_NODE_SHIFT = _SEQUENCE_BITS
_MACHINE_SHIFT = _SEQUENCE_BITS + _NODE_BITS
_TIMESTAMP_SHIFT = _SEQUENCE_BITS + _NODE_BITS + _MACHINE_BITS


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class SnowflakeIdGenerator:
    """Generates unique, time-ordered positive 63-bit integers.

    One instance is created per process (see `Settings.machine_id` /
    `Settings.node_id`) and handed to whatever needs fresh identifiers.
    """

    def __init__(
        self,
        machine_id: int,
        node_id: int,
        clock: Optional[Callable[[], int]] = None,
    ):
        if not 0 <= machine_id <= _MAX_WORKER:
            raise ValueError(f"machine_id must be within [0, {_MAX_WORKER}]")
        if not 0 <= node_id <= _MAX_WORKER:
            raise ValueError(f"node_id must be within [0, {_MAX_WORKER}]")
        self.machine_id = machine_id
        self.node_id = node_id
        self._clock = clock or _now_ms
        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    def generate(self) -> int:
        with self._lock:
            now = self._clock()
            if now < self._last_ms:
                # Clock went backwards: keep issuing from the last timestamp
                now = self._last_ms
            if now == self._last_ms:
                self._sequence = (self._sequence + 1) & _SEQUENCE_MASK
                if self._sequence == 0:
                    now = self._wait_next_ms(self._last_ms)
            else:
                self._sequence = 0
            self._last_ms = now
            return (
                ((now - TWITTER_EPOCH_MS) << _TIMESTAMP_SHIFT)
                | (self.machine_id << _MACHINE_SHIFT)
                | (self.node_id << _NODE_SHIFT)
                | self._sequence
            )

    def _wait_next_ms(self, last_ms: int) -> int:
        now = self._clock()
        while now <= last_ms:
            time.sleep(0.0001)
            now = self._clock()
        return now
