"""UDP listener for the pad2pad relay"""

import logging
import select
import socket
from typing import Optional

from pad2pad.server.session import SenderIdentity

logger = logging.getLogger(__name__)

# Largest datagram read; state packets are far smaller
MAX_DATAGRAM_SIZE = 256


class RelayNetwork:
    """Connectionless listener with a bounded receive wait"""

    def __init__(self, host: str, port: int) -> None:
        """
        Initialize relay network

        Args:
            host: Host address to bind to
            port: Port to listen on (0 picks an ephemeral port)
        """
        self.host: str = host
        self.port: int = port
        self.server_socket: Optional[socket.socket] = None
        self.is_running: bool = False

    def server_start(self) -> None:
        """
        Bind the UDP socket

        Raises:
            OSError: If unable to bind to address
        """
        self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server_socket.bind((self.host, self.port))
        self.server_socket.setblocking(False)
        self.is_running = True

        host, port = self.address_get()
        logger.info(f"Relay listening on UDP {host}:{port}")

    def server_stop(self) -> None:
        """Close the socket"""
        self.is_running = False

        if self.server_socket:
            try:
                self.server_socket.close()
            except OSError as e:
                logger.error(f"Error closing relay socket: {e}")
            finally:
                self.server_socket = None

        logger.info("Relay socket closed")

    def address_get(self) -> SenderIdentity:
        """
        Get the bound address

        Returns:
            (host, port) actually bound
        """
        if self.server_socket is None:
            return self.host, self.port
        host, port = self.server_socket.getsockname()[:2]
        return host, port

    def datagram_receive(self, timeout: float) -> Optional[tuple[bytes, SenderIdentity]]:
        """
        Wait up to timeout for one datagram

        Args:
            timeout: Maximum wait in seconds

        Returns:
            (payload, sender identity), or None on timeout or transient error
        """
        if not self.server_socket:
            return None

        try:
            readable, _, _ = select.select([self.server_socket], [], [], timeout)
            if not readable:
                return None
            data, address = self.server_socket.recvfrom(MAX_DATAGRAM_SIZE)
        except (BlockingIOError, InterruptedError):
            return None
        except OSError as e:
            if self.is_running:
                logger.warning(f"Network error: {e}")
            return None

        return data, (address[0], address[1])
