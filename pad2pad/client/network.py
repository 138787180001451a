"""
UDP sender transport for pad2pad.

The socket is blocking and `connect()`ed to the relay so each frame leaves the
process inside `datagram_send`. The send buffer is shrunk to the OS minimum
so frames are never queued behind older state.
"""

from __future__ import annotations

import logging
import socket

logger = logging.getLogger(__name__)


class SenderNetwork:
    """
    Connected UDP socket used by the sender runtime.

    There is no handshake or acknowledgment; "connected" only means the
    default destination is set.
    """

    def __init__(self, host: str, port: int) -> None:
        """
        Initialize sender transport configuration.

        Args:
            host:
                Relay host.
            port:
                Relay UDP port.
        """
        self.host: str = host
        self.port: int = port
        self.socket: socket.socket | None = None
        self.is_connected: bool = False

    def connection_establish(self) -> None:
        """
        Create the socket and set the relay as default destination.

        Raises:
            OSError:
                Raised when the address cannot be resolved or the socket
                cannot be created.
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setblocking(True)
            self.lowLatencyOptions_apply(sock)
            sock.connect((self.host, self.port))
        except OSError:
            sock.close()
            raise
        self.socket = sock
        self.is_connected = True
        logger.info("Sender target: %s:%s (synchronous, minimal buffering)", self.host, self.port)

    def lowLatencyOptions_apply(self, sock: socket.socket) -> None:
        """
        Minimize send buffering and forbid fragmentation where supported.

        Unsupported options are skipped; they only affect latency.

        Args:
            sock:
                Socket to configure.
        """
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, 0)
        except OSError as exc:
            logger.debug("SO_SNDBUF not adjustable: %s", exc)

        mtu_discover = getattr(socket, "IP_MTU_DISCOVER", None)
        pmtudisc_do = getattr(socket, "IP_PMTUDISC_DO", None)
        if mtu_discover is not None and pmtudisc_do is not None:
            try:
                sock.setsockopt(socket.IPPROTO_IP, mtu_discover, pmtudisc_do)
            except OSError as exc:
                logger.debug("IP_MTU_DISCOVER not adjustable: %s", exc)

    def datagram_send(self, data: bytes) -> None:
        """
        Send one packet immediately.

        Args:
            data:
                Encoded state packet.

        Raises:
            ConnectionError:
                Raised when the socket is not open.
            OSError:
                Raised when the send fails (for example ICMP port unreachable).
        """
        if not self.is_connected or self.socket is None:
            raise ConnectionError("Sender socket is not open")
        self.socket.send(data)

    def connection_close(self) -> None:
        """
        Close the socket.

        This method is idempotent.
        """
        self.is_connected = False
        if self.socket is not None:
            try:
                self.socket.close()
            except OSError as exc:
                logger.error("Error closing socket: %s", exc)
            finally:
                self.socket = None
