from suipanel.stats_tracker import Counter, StatsTracker


class FakeConn:
    def __init__(self, incoming):
        self.incoming = incoming
        self.sent = b""
        self.closed = False

    def recv(self, size):
        chunk, self.incoming = self.incoming[:size], self.incoming[size:]
        return chunk

    def send(self, data):
        self.sent += data
        return len(data)

    def close(self):
        self.closed = True


def test_counter_swap_resets():
    counter = Counter()
    counter.add(5)
    counter.add(7)
    assert counter.swap() == 5 + 7
    assert counter.swap() == 0


def test_get_counters_skips_empty_names():
    tracker = StatsTracker()
    reads, writes = tracker.get_counters("in", "", "alice")
    assert len(reads) == 2
    assert len(writes) == 2


def test_get_counters_shares_counters():
    tracker = StatsTracker()
    first, _ = tracker.get_counters("in", "out", "u")
    second, _ = tracker.get_counters("in", "out", "u")
    assert all(a is b for a, b in zip(first, second))


def test_routed_connection_counts_traffic():
    tracker = StatsTracker()
    incoming = b"downloaded"
    outgoing = b"hello"
    fake = FakeConn(incoming)
    conn = tracker.routed_connection(fake, "in", "out", "alice")
    assert conn.send(outgoing) == len(outgoing)
    assert conn.recv(1024) == incoming
    stats = tracker.get_stats()
    assert [s.resource for s in stats] == [
        "inbound", "inbound", "outbound", "outbound", "user", "user",
    ]
    for stat in stats:
        expected = len(incoming) if stat.direction else len(outgoing)
        assert stat.traffic == expected
    assert {s.tag for s in stats} == {"in", "out", "alice"}


def test_get_stats_is_empty_after_swap():
    tracker = StatsTracker()
    conn = tracker.routed_connection(FakeConn(b"abc"), "in", "out", "")
    conn.recv(10)
    assert len(tracker.get_stats()) == 4
    assert tracker.get_stats() == []


def test_close_closes_underlying():
    fake = FakeConn(b"")
    conn = StatsTracker().routed_connection(fake, "in", "out", "")
    conn.close()
    assert fake.closed is True