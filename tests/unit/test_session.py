"""Unit tests for relay session tracking and slot allocation"""

import threading

import pytest

from pad2pad.common.errors import NoCapacity
from pad2pad.common.types import StateRecord
from pad2pad.server.session import SessionTable


class TestResolve:
    """Test identity to slot binding"""

    def test_resolve_allocates_lowest_free_slot(self, manual_clock):
        table = SessionTable(max_slots=4, clock=manual_clock)

        first = table.resolve(("10.0.0.1", 5000))
        second = table.resolve(("10.0.0.2", 5000))

        assert first.slot == 0
        assert second.slot == 1
        assert first.created_at == manual_clock.now

    def test_resolve_returns_same_session_for_same_identity(self):
        table = SessionTable(max_slots=2)

        session = table.resolve(("10.0.0.1", 5000))

        assert table.resolve(("10.0.0.1", 5000)) is session
        assert table.sessions_count() == 1

    def test_same_host_different_port_is_new_sender(self):
        table = SessionTable(max_slots=2)

        a = table.resolve(("10.0.0.1", 5000))
        b = table.resolve(("10.0.0.1", 5001))

        assert a.slot != b.slot

    def test_resolve_at_capacity_raises_without_creating(self):
        table = SessionTable(max_slots=1)
        table.resolve(("10.0.0.1", 5000))

        with pytest.raises(NoCapacity):
            table.resolve(("10.0.0.2", 5000))
        assert table.sessions_count() == 1

    def test_concurrent_resolves_get_unique_slots(self):
        """N threads resolving distinct identities never share a slot"""
        max_slots = 8
        table = SessionTable(max_slots=max_slots)
        barrier = threading.Barrier(max_slots + 1)
        slots: list[int] = []
        failures: list[Exception] = []
        slots_lock = threading.Lock()

        def worker(index: int) -> None:
            barrier.wait()
            try:
                session = table.resolve(("10.0.0.1", 6000 + index))
            except NoCapacity as e:
                with slots_lock:
                    failures.append(e)
                return
            with slots_lock:
                slots.append(session.slot)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(max_slots + 1)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert sorted(slots) == list(range(max_slots))
        assert len(failures) == 1
        assert table.sessions_count() == max_slots


class TestTouch:
    """Test liveness updates"""

    def test_touch_updates_liveness_and_sequence(self, manual_clock):
        table = SessionTable(max_slots=1, clock=manual_clock)
        session = table.resolve(("10.0.0.1", 5000))
        manual_clock.advance(0.5)

        assert table.touch(session, StateRecord(sequence=7)) is True
        assert session.last_seen == manual_clock.now
        assert session.last_sequence == 7
        assert session.packets_accepted == 1

    def test_touch_after_eviction_returns_false(self, manual_clock):
        table = SessionTable(max_slots=1, clock=manual_clock)
        session = table.resolve(("10.0.0.1", 5000))
        table.expired_sweep(manual_clock.now + 10, timeout=5.0)

        assert table.touch(session, StateRecord(sequence=1)) is False
        assert session.last_sequence is None

    def test_reject_counts_stale_packet(self):
        table = SessionTable(max_slots=1)
        session = table.resolve(("10.0.0.1", 5000))

        table.reject(session)

        assert table.sessions_snapshot()[0].packets_rejected == 1


class TestExpiredSweep:
    """Test timeout eviction"""

    def test_silence_past_timeout_is_evicted(self, manual_clock):
        table = SessionTable(max_slots=2, clock=manual_clock)
        session = table.resolve(("10.0.0.1", 5000))

        evicted = table.expired_sweep(session.last_seen + 5.001, timeout=5.0)

        assert evicted == [0]
        assert table.sessions_count() == 0

    def test_silence_under_timeout_is_retained(self, manual_clock):
        table = SessionTable(max_slots=2, clock=manual_clock)
        session = table.resolve(("10.0.0.1", 5000))

        evicted = table.expired_sweep(session.last_seen + 4.999, timeout=5.0)

        assert evicted == []
        assert table.sessions_count() == 1

    def test_silence_exactly_at_timeout_is_retained(self, manual_clock):
        table = SessionTable(max_slots=1, clock=manual_clock)
        session = table.resolve(("10.0.0.1", 5000))

        assert table.expired_sweep(session.last_seen + 5.0, timeout=5.0) == []

    def test_only_silent_sessions_are_evicted(self, manual_clock):
        table = SessionTable(max_slots=3, clock=manual_clock)
        quiet = table.resolve(("10.0.0.1", 5000))
        busy = table.resolve(("10.0.0.2", 5000))
        manual_clock.advance(4.0)
        table.touch(busy, StateRecord(sequence=1))
        manual_clock.advance(2.0)

        assert table.expired_sweep(None, timeout=5.0) == [quiet.slot]
        assert [s.slot for s in table.sessions_snapshot()] == [busy.slot]

    def test_evicted_slot_not_reused_until_released(self, manual_clock):
        """Slots drain until the caller has reset the device"""
        table = SessionTable(max_slots=1, clock=manual_clock)
        table.resolve(("10.0.0.1", 5000))
        table.expired_sweep(manual_clock.advance(10), timeout=5.0)

        with pytest.raises(NoCapacity):
            table.resolve(("10.0.0.2", 5000))

        table.slot_release(0)
        assert table.resolve(("10.0.0.2", 5000)).slot == 0

    def test_returning_sender_after_eviction_starts_fresh(self, manual_clock):
        table = SessionTable(max_slots=2, clock=manual_clock)
        old = table.resolve(("10.0.0.1", 5000))
        table.touch(old, StateRecord(sequence=900))
        table.expired_sweep(manual_clock.advance(10), timeout=5.0)
        table.slot_release(old.slot)

        new = table.resolve(("10.0.0.1", 5000))

        assert new is not old
        assert new.last_sequence is None
