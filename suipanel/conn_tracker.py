"""Registry of open routed connections, closable per inbound."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from typing import Any


@dataclass
class ConnectionInfo:
    id: str
    inbound: str
    type: str
    conn: Any = None
    packet_conn: Any = None


class TrackedConnection:
    """A connection that leaves its tracker when closed."""

    def __init__(self, conn: Any, info: ConnectionInfo, tracker: ConnTracker) -> None:
        self.conn = conn
        self.info = info
        self._tracker = tracker

    def close(self) -> Any:
        self._tracker._untrack(self.info.id)
        return self.conn.close()

    def __getattr__(self, name: str) -> Any:
        conn = self.__dict__.get("conn")
        if conn is None:
            raise AttributeError(name)
        return getattr(conn, name)

    def __enter__(self) -> TrackedConnection:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class ConnTracker:
    """Keeps every routed connection until it closes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: dict[str, ConnectionInfo] = {}

    def _track(self, info: ConnectionInfo) -> None:
        with self._lock:
            self._connections[info.id] = info

    def _untrack(self, conn_id: str) -> None:
        with self._lock:
            self._connections.pop(conn_id, None)

    def routed_connection(self, conn: Any, inbound: str) -> TrackedConnection:
        info = ConnectionInfo(id=str(uuid.uuid4()), inbound=inbound, type="tcp", conn=conn)
        self._track(info)
        return TrackedConnection(conn, info, self)

    def routed_packet_connection(self, conn: Any, inbound: str) -> TrackedConnection:
        info = ConnectionInfo(id=str(uuid.uuid4()), inbound=inbound, type="udp", packet_conn=conn)
        self._track(info)
        return TrackedConnection(conn, info, self)

    def close_conn_by_inbound(self, inbound: str) -> int:
        """Close every connection of ``inbound``; return how many were closed."""
        closed = 0
        with self._lock:
            for conn_id, info in list(self._connections.items()):
                if info.inbound != inbound:
                    continue
                if info.conn is not None:
                    info.conn.close()
                if info.packet_conn is not None:
                    info.packet_conn.close()
                del self._connections[conn_id]
                closed += 1
        return closed

    def tracked_ids(self) -> list[str]:
        with self._lock:
            return list(self._connections)