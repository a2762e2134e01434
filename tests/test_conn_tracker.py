from suipanel.conn_tracker import ConnTracker


class FakeConn:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True

    def fileno(self):
        return 42


def test_routed_connection_is_tracked_as_tcp():
    tracker = ConnTracker()
    conn = tracker.routed_connection(FakeConn(), "in-a")
    assert conn.info.type == "tcp"
    assert conn.info.inbound == "in-a"
    assert tracker.tracked_ids() == [conn.info.id]


def test_packet_connection_is_udp():
    tracker = ConnTracker()
    fake = FakeConn()
    conn = tracker.routed_packet_connection(fake, "in-a")
    assert conn.info.type == "udp"
    assert conn.info.packet_conn is fake


def test_close_untracks_and_closes():
    tracker = ConnTracker()
    fake = FakeConn()
    conn = tracker.routed_connection(fake, "in-a")
    conn.close()
    assert fake.closed is True
    assert tracker.tracked_ids() == []


def test_attribute_delegation():
    fake = FakeConn()
    conn = ConnTracker().routed_connection(fake, "x")
    assert conn.fileno() == fake.fileno()


def test_close_conn_by_inbound():
    tracker = ConnTracker()
    a1, a2, b1 = FakeConn(), FakeConn(), FakeConn()
    tracker.routed_connection(a1, "a")
    tracker.routed_packet_connection(a2, "a")
    kept = tracker.routed_connection(b1, "b")
    assert tracker.close_conn_by_inbound("a") == 2
    assert a1.closed and a2.closed
    assert b1.closed is False
    assert tracker.tracked_ids() == [kept.info.id]


def test_ids_are_unique():
    tracker = ConnTracker()
    ids = {tracker.routed_connection(FakeConn(), "a").info.id for _ in range(20)}
    assert len(ids) == 20