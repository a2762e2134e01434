"""Traffic counters per inbound, outbound and user."""

from __future__ import annotations

import threading
import time
from typing import Any

from .models import Stats


class Counter:
    """A thread-safe byte counter."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def add(self, n: int) -> None:
        with self._lock:
            self._value += n

    def swap(self) -> int:
        """Return the current count and reset it to zero."""
        with self._lock:
            value, self._value = self._value, 0
            return value


class CountedConnection:
    """A connection whose reads and writes feed traffic counters."""

    def __init__(self, conn: Any, read_counters: list[Counter], write_counters: list[Counter]):
        self.conn = conn
        self._read = read_counters
        self._write = write_counters

    def recv(self, size: int) -> bytes:
        data = self.conn.recv(size)
        for counter in self._read:
            counter.add(len(data))
        return data

    def send(self, data: bytes) -> int:
        sent = self.conn.send(data)
        for counter in self._write:
            counter.add(sent)
        return sent

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> CountedConnection:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class _Pair:
    __slots__ = ("read", "write")

    def __init__(self) -> None:
        self.read = Counter()
        self.write = Counter()


class StatsTracker:
    """Collects traffic of routed connections until it is read out."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._groups: dict[str, dict[str, _Pair]] = {
            "inbound": {},
            "outbound": {},
            "user": {},
        }

    def get_counters(
        self, inbound: str, outbound: str, user: str
    ) -> tuple[list[Counter], list[Counter]]:
        """Return the read and write counters for the non-empty names."""
        reads: list[Counter] = []
        writes: list[Counter] = []
        with self._lock:
            for resource, name in (("inbound", inbound), ("outbound", outbound), ("user", user)):
                if not name:
                    continue
                pair = self._groups[resource].setdefault(name, _Pair())
                reads.append(pair.read)
                writes.append(pair.write)
        return reads, writes

    def routed_connection(
        self, conn: Any, inbound: str, outbound: str, user: str
    ) -> CountedConnection:
        reads, writes = self.get_counters(inbound, outbound, user)
        return CountedConnection(conn, reads, writes)

    def get_stats(self) -> list[Stats]:
        """Return and reset the traffic gathered since the last call."""
        now = int(time.time())
        result: list[Stats] = []
        with self._lock:
            for resource, group in self._groups.items():
                for tag, pair in group.items():
                    down = pair.write.swap()
                    up = pair.read.swap()
                    if down > 0 or up > 0:
                        result.append(Stats(date_time=now, resource=resource, tag=tag,
                                            direction=False, traffic=down))
                        result.append(Stats(date_time=now, resource=resource, tag=tag,
                                            direction=True, traffic=up))
        return result