"""Unit tests for the sender runtime and send policies"""

from __future__ import annotations

import threading
from typing import Optional

import pytest

from pad2pad.client.policy import (
    AlwaysSendPolicy,
    SendDecision,
    SendOnChangePolicy,
    sendPolicy_create,
)
from pad2pad.client.sender import Sender
from pad2pad.common.config import SenderConfig
from pad2pad.common.types import Button, Flag, SendPolicyName, StateRecord
from pad2pad.protocol.codec import COMPACT_LAYOUT, FULL_LAYOUT, StateCodec


class _FakeCapture:
    """Capture backend fake with a scriptable connection state."""

    def __init__(self, record: Optional[StateRecord] = None) -> None:
        self.record: StateRecord = record or StateRecord()
        self.connected: bool = True
        self.probe_calls: int = 0
        self.closed: bool = False

    def sample(self) -> Optional[StateRecord]:
        return self.record if self.connected else None

    def connected_check(self) -> bool:
        self.probe_calls += 1
        return self.connected

    def connection_close(self) -> None:
        self.closed = True


class _FakeNetwork:
    """Datagram sink recording packets, optionally failing."""

    def __init__(self) -> None:
        self.packets: list[bytes] = []
        self.fail_next: int = 0

    def datagram_send(self, data: bytes) -> None:
        if self.fail_next:
            self.fail_next -= 1
            raise ConnectionRefusedError("port unreachable")
        self.packets.append(data)


def _sender_build(capture, network, layout=FULL_LAYOUT, policy=None, clock=None, **kwargs):
    return Sender(
        capture=capture,
        network=network,
        codec=StateCodec(layout),
        policy=policy or AlwaysSendPolicy(),
        clock=clock or (lambda: 0.0),
        **kwargs,
    )


class TestSendOnChangePolicy:
    """Test change detection and heartbeats"""

    def test_first_sample_sent(self):
        policy = SendOnChangePolicy(deadzone=500, heartbeat=1.0)
        assert policy.decide(StateRecord(), 0.0) == SendDecision.SEND

    def test_unchanged_sample_skipped(self):
        policy = SendOnChangePolicy(deadzone=500, heartbeat=1.0)
        policy.transmitted(StateRecord(), 0.0)

        assert policy.decide(StateRecord(), 0.5) == SendDecision.SKIP

    def test_button_change_sent(self):
        policy = SendOnChangePolicy(deadzone=500, heartbeat=1.0)
        policy.transmitted(StateRecord(), 0.0)

        assert policy.decide(StateRecord(buttons=Button.A), 0.1) == SendDecision.SEND

    def test_trigger_change_sent(self):
        policy = SendOnChangePolicy(deadzone=500, heartbeat=1.0)
        policy.transmitted(StateRecord(), 0.0)

        assert policy.decide(StateRecord(triggers=(1, 0)), 0.1) == SendDecision.SEND

    def test_axis_within_deadzone_skipped(self):
        policy = SendOnChangePolicy(deadzone=500, heartbeat=1.0)
        policy.transmitted(StateRecord(axes=(1000, 0, 0, 0)), 0.0)

        assert policy.decide(StateRecord(axes=(1500, 0, 0, 0)), 0.1) == SendDecision.SKIP
        assert policy.decide(StateRecord(axes=(1501, 0, 0, 0)), 0.1) == SendDecision.SEND

    def test_heartbeat_after_silence(self):
        policy = SendOnChangePolicy(deadzone=500, heartbeat=1.0)
        policy.transmitted(StateRecord(), 0.0)

        assert policy.decide(StateRecord(), 0.999) == SendDecision.SKIP
        assert policy.decide(StateRecord(), 1.0) == SendDecision.HEARTBEAT

    def test_heartbeat_disabled(self):
        policy = SendOnChangePolicy(deadzone=500, heartbeat=0.0)
        policy.transmitted(StateRecord(), 0.0)

        assert policy.decide(StateRecord(), 100.0) == SendDecision.SKIP


class TestSendPolicyCreate:
    """Test policy selection from configuration"""

    def test_default_is_always(self):
        assert isinstance(sendPolicy_create(SenderConfig()), AlwaysSendPolicy)

    def test_on_change_uses_configured_values(self):
        config = SenderConfig(send_policy=SendPolicyName.ON_CHANGE, deadzone=800, heartbeat_ms=250)

        policy = sendPolicy_create(config)

        assert isinstance(policy, SendOnChangePolicy)
        assert policy.deadzone == 800
        assert policy.heartbeat == 0.25

    def test_deadzone_scaled_for_compact_layout(self):
        config = SenderConfig(send_policy=SendPolicyName.ON_CHANGE, deadzone=32767)

        policy = sendPolicy_create(config, COMPACT_LAYOUT)

        assert policy.deadzone == 127


class TestSenderTick:
    """Test one sample/transmit cycle"""

    def test_always_policy_sends_every_sample(self):
        capture = _FakeCapture(StateRecord(buttons=Button.A))
        network = _FakeNetwork()
        sender = _sender_build(capture, network)

        for _ in range(3):
            assert sender.tick() is True

        codec = StateCodec(FULL_LAYOUT)
        decoded = [codec.decode(packet) for packet in network.packets]
        assert [r.sequence for r in decoded] == [1, 2, 3]
        assert all(r.buttons == Button.A for r in decoded)

    def test_slot_hint_stamped(self):
        network = _FakeNetwork()
        sender = _sender_build(_FakeCapture(), network, slot_hint=3)

        sender.tick()

        assert StateCodec(FULL_LAYOUT).decode(network.packets[0]).slot_hint == 3

    def test_sequence_wraps_at_layout_width(self):
        network = _FakeNetwork()
        sender = _sender_build(_FakeCapture(), network, layout=COMPACT_LAYOUT)
        sender.sequence = 254

        sender.tick()
        sender.tick()

        codec = StateCodec(COMPACT_LAYOUT)
        assert [codec.decode(p).sequence for p in network.packets] == [255, 0]

    def test_sequence_advances_on_failed_send(self, caplog):
        network = _FakeNetwork()
        network.fail_next = 1
        sender = _sender_build(_FakeCapture(), network)

        assert sender.tick() is False
        assert sender.tick() is True

        assert StateCodec(FULL_LAYOUT).decode(network.packets[0]).sequence == 2
        assert sender.stats.send_errors == 1
        assert "Network error" in caplog.text

    def test_suppressed_sample_keeps_sequence(self):
        network = _FakeNetwork()
        policy = SendOnChangePolicy(deadzone=500, heartbeat=0.0)
        sender = _sender_build(_FakeCapture(), network, policy=policy)

        sender.tick(0.0)
        sender.tick(0.1)

        assert len(network.packets) == 1
        assert sender.sequence == 1
        assert sender.stats.suppressed == 1

    def test_heartbeat_flagged_on_compact_layout(self):
        network = _FakeNetwork()
        policy = SendOnChangePolicy(deadzone=1, heartbeat=1.0)
        sender = _sender_build(_FakeCapture(), network, layout=COMPACT_LAYOUT, policy=policy)

        sender.tick(0.0)
        sender.tick(1.5)

        codec = StateCodec(COMPACT_LAYOUT)
        first, heartbeat = (codec.decode(p) for p in network.packets)
        assert not first.flags & Flag.HEARTBEAT
        assert heartbeat.flags & Flag.HEARTBEAT
        assert heartbeat.sequence == 2

    def test_heartbeat_on_full_layout_has_no_flags(self):
        network = _FakeNetwork()
        policy = SendOnChangePolicy(deadzone=1, heartbeat=1.0)
        sender = _sender_build(_FakeCapture(), network, policy=policy)

        sender.tick(0.0)
        assert sender.tick(1.5) is True


class TestSenderDisconnect:
    """Test pause and reconnection on capture loss"""

    def test_disconnect_pauses_transmission(self, caplog):
        capture = _FakeCapture()
        network = _FakeNetwork()
        sender = _sender_build(capture, network, reconnect_poll=1.0)
        capture.connected = False

        assert sender.tick(0.0) is False
        assert sender.paused is True
        assert network.packets == []
        assert "Controller disconnected" in caplog.text

    def test_probes_rate_limited_while_paused(self):
        capture = _FakeCapture()
        sender = _sender_build(capture, _FakeNetwork(), reconnect_poll=1.0)
        capture.connected = False
        sender.tick(0.0)

        sender.tick(0.2)
        sender.tick(0.5)
        assert capture.probe_calls == 0

        sender.tick(1.0)
        assert capture.probe_calls == 1

    def test_reconnect_resumes(self):
        capture = _FakeCapture()
        network = _FakeNetwork()
        sender = _sender_build(capture, network, reconnect_poll=1.0)
        capture.connected = False
        sender.tick(0.0)

        capture.connected = True
        assert sender.tick(1.0) is True
        assert sender.paused is False
        assert len(network.packets) == 1


class TestSenderRun:
    """Test the paced run loop"""

    def test_run_stops_on_event(self):
        network = _FakeNetwork()
        sender = Sender(
            capture=_FakeCapture(),
            network=network,
            codec=StateCodec(FULL_LAYOUT),
            policy=AlwaysSendPolicy(),
            sample_interval=0.001,
            stats_interval=0.0,
        )
        stop_event = threading.Event()
        thread = threading.Thread(target=sender.run, args=(stop_event,))
        thread.start()

        # Give the loop a few iterations
        threading.Event().wait(0.05)
        stop_event.set()
        thread.join(timeout=2.0)

        assert not thread.is_alive()
        assert len(network.packets) >= 1

    @pytest.mark.parametrize("paused", [True, False])
    def test_stats_log(self, paused, caplog):
        sender = _sender_build(_FakeCapture(), _FakeNetwork())
        sender.tick()
        sender.paused = paused

        sender.stats_log(elapsed=1.0)

        assert "Packets sent: 1" in caplog.text
        assert ("paused" in caplog.text) is paused

    @pytest.mark.parametrize(
        "layout, axes, active",
        [
            (FULL_LAYOUT, (100, 0, 0, -100), False),
            (FULL_LAYOUT, (5000, 0, 0, 0), True),
            (COMPACT_LAYOUT, (8, 0, 0, 0), False),
            (COMPACT_LAYOUT, (40, 0, 0, 0), True),
        ],
    )
    def test_stats_log_activity_uses_layout_scale(self, layout, axes, active, caplog):
        """Small stick drift on a 16-bit layout still reads as resting"""
        sender = _sender_build(_FakeCapture(StateRecord(axes=axes)), _FakeNetwork(), layout=layout)
        sender.tick()

        sender.stats_log(elapsed=1.0)

        assert f"active={active}" in caplog.text
