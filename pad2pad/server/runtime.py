"""
Relay runtime orchestration.

Runs the relay loop and the timeout sweeper as two threads sharing one
session table and one stop event. The calling thread stays free to report
statistics and to react to Ctrl+C.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from pad2pad.common.config import Config
from pad2pad.input.backend import VirtualDeviceBackend
from pad2pad.protocol.codec import StateCodec, layout_forName
from pad2pad.server.gate import SequenceGate
from pad2pad.server.network import RelayNetwork
from pad2pad.server.relay import RelayLoop
from pad2pad.server.session import SessionTable
from pad2pad.server.sweeper import TimeoutSweeper

logger = logging.getLogger(__name__)

_JOIN_TIMEOUT_SECONDS: float = 2.0


class RelayRuntime:
    """Owns the relay threads and their shared stop signal"""

    def __init__(
        self,
        network: RelayNetwork,
        relay_loop: RelayLoop,
        sweeper: TimeoutSweeper,
        stats_interval: float = 2.0,
    ) -> None:
        """
        Initialize runtime

        Args:
            network: Bound-or-unbound relay socket
            relay_loop: Receive pipeline
            sweeper: Timeout sweeper sharing relay_loop's table
            stats_interval: Seconds between statistics lines (0 disables)
        """
        self.network: RelayNetwork = network
        self.relay_loop: RelayLoop = relay_loop
        self.sweeper: TimeoutSweeper = sweeper
        self.stats_interval: float = stats_interval
        self.stop_event: threading.Event = threading.Event()
        self._threads: list[threading.Thread] = []

    def runtime_start(self) -> None:
        """
        Bind the socket and start both worker threads

        Raises:
            OSError: If the socket cannot be bound
        """
        if self.network.server_socket is None:
            self.network.server_start()
        self.stop_event.clear()
        self._threads = [
            threading.Thread(
                target=self.relay_loop.run,
                args=(self.network, self.stop_event),
                name="pad2pad-relay",
                daemon=True,
            ),
            threading.Thread(
                target=self.sweeper.run,
                args=(self.stop_event,),
                name="pad2pad-sweeper",
                daemon=True,
            ),
        ]
        for thread in self._threads:
            thread.start()

    def runtime_stop(self) -> None:
        """Signal both threads, wait for them, and close the socket"""
        self.stop_event.set()
        for thread in self._threads:
            thread.join(timeout=_JOIN_TIMEOUT_SECONDS)
            if thread.is_alive():
                logger.warning(f"Thread {thread.name} did not stop in time")
        self._threads = []
        self.network.server_stop()

    def runtime_wait(self) -> bool:
        """
        Block the calling thread, logging statistics, until stopped

        Returns early if a worker thread has died while the runtime is still
        meant to be running.

        Returns:
            False if a worker thread stopped unexpectedly, True otherwise
        """
        wait_step = self.stats_interval if self.stats_interval > 0 else 0.5
        while not self.stop_event.wait(wait_step):
            dead = self.deadThread_find()
            if dead is not None:
                logger.error(f"Thread {dead.name} stopped unexpectedly, shutting down relay")
                return False
            if self.stats_interval > 0:
                self.stats_log()
        return True

    def deadThread_find(self) -> Optional[threading.Thread]:
        """
        Find a started worker thread that is no longer running

        Returns:
            The first dead worker thread, or None if all are alive
        """
        for thread in self._threads:
            if not thread.is_alive():
                return thread
        return None

    def stats_log(self) -> None:
        """Log relay counters and per-session statistics"""
        counters = self.relay_loop.counters_get()
        sessions = self.relay_loop.table.sessions_snapshot()
        logger.info(
            f"Packets: {counters.accepted} accepted, {counters.stale_dropped} stale, "
            f"{counters.rejected} rejected, {counters.capacity_dropped} over capacity, "
            f"{counters.device_errors + counters.loop_errors} errors | "
            f"Active senders: {len(sessions)}"
        )
        for session in sessions:
            logger.debug(
                f"  slot #{session.slot}: {session.identity[0]}:{session.identity[1]} "
                f"seq={session.last_sequence} accepted={session.packets_accepted} "
                f"rejected={session.packets_rejected}"
            )


def relayRuntime_create(
    config: Config,
    device: VirtualDeviceBackend,
    clock: Callable[[], float] = time.monotonic,
) -> RelayRuntime:
    """
    Build a relay runtime from configuration

    Args:
        config: Loaded configuration
        device: Virtual device backend
        clock: Time source shared by the table, loop and sweeper

    Returns:
        Unstarted RelayRuntime
    """
    relay_config = config.relay
    codec = StateCodec(layout_forName(config.protocol.layout))
    table = SessionTable(max_slots=relay_config.max_sessions, clock=clock)
    relay_loop = RelayLoop(
        codec=codec,
        table=table,
        gate=SequenceGate(codec.layout.sequence_bits),
        device=device,
        poll_interval=relay_config.poll_interval_ms / 1000.0,
        clock=clock,
    )
    sweeper = TimeoutSweeper(
        table=table,
        device=device,
        timeout=relay_config.timeout_ms / 1000.0,
        interval=relay_config.sweep_interval_ms / 1000.0,
        clock=clock,
    )
    network = RelayNetwork(host=relay_config.host, port=relay_config.port)
    return RelayRuntime(
        network=network,
        relay_loop=relay_loop,
        sweeper=sweeper,
        stats_interval=relay_config.stats_interval_ms / 1000.0,
    )
