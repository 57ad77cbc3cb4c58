"""Time-ordered string ids for orders, flows and funding requests.

An id packs (ms since EPOCH_MS | machine | per-ms sequence) into one int and
renders it as 20 zero-padded digits, so ids sort lexically in creation order
and double as pagination cursors.
"""

import threading
import time
from datetime import datetime, timezone


class SnowflakeIdGenerator:
    """64-bit layout: 41 bits of milliseconds, 10 of machine id, 12 of sequence."""

    EPOCH_MS = 1_700_000_000_000  # 2023-11-14T22:13:20Z
    _MACHINE_BITS = 10
    _SEQUENCE_BITS = 12
    LOW_BITS = _MACHINE_BITS + _SEQUENCE_BITS

    def __init__(self, machine_id: int = 0) -> None:
        max_machine = (1 << self._MACHINE_BITS) - 1
        if not 0 <= machine_id <= max_machine:
            raise ValueError(f"machine_id must be between 0 and {max_machine}, got {machine_id}")
        self._machine_id = machine_id
        self._last_ms = -1
        self._sequence = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now_ms = time.time_ns() // 1_000_000
            if now_ms <= self._last_ms:
                # Same millisecond (or clock stepped back): stay on the last one
                now_ms = self._last_ms
                self._sequence = (self._sequence + 1) % (1 << self._SEQUENCE_BITS)
                if self._sequence == 0:
                    while now_ms <= self._last_ms:
                        now_ms = time.time_ns() // 1_000_000
            else:
                self._sequence = 0
            self._last_ms = now_ms
            low = (self._machine_id << self._SEQUENCE_BITS) | self._sequence
            return f"{((now_ms - self.EPOCH_MS) << self.LOW_BITS) | low:020d}"

    @classmethod
    def split(cls, id_str: str) -> tuple[int, int]:
        """(unix milliseconds, machine/sequence bits) encoded in an id."""
        value = int(id_str)
        return (value >> cls.LOW_BITS) + cls.EPOCH_MS, value & ((1 << cls.LOW_BITS) - 1)


_generator = SnowflakeIdGenerator()


def generate_id() -> str:
    return _generator.next_id()


def generate_order_no(order_id: str) -> str:
    """Human order number: ORD + UTC date + ms-of-day + machine/sequence bits.

    Unique whenever the ids are unique, and sorts like the id within a day:
    'ORD20260115' + '03421337' + '0000005'
    """
    unix_ms, low = SnowflakeIdGenerator.split(order_id)
    day = datetime.fromtimestamp(unix_ms / 1000, tz=timezone.utc)
    return f"ORD{day:%Y%m%d}{unix_ms % 86_400_000:08d}{low:07d}"
