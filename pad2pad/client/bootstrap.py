"""Sender bootstrap helpers for config, capture backend, and network wiring."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pad2pad.client.network import SenderNetwork
from pad2pad.common.config import Config, ConfigLoader
from pad2pad.input.backend import CaptureBackend
from pad2pad.input.factory import senderBackend_create
from pad2pad.protocol.codec import WireLayout

logger = logging.getLogger(__name__)


def serverAddress_parse(server: str) -> tuple[str, int]:
    """
    Parse server address into host and port

    Args:
        server: Server address string (host:port)

    Returns:
        Tuple of (host, port)

    Raises:
        ValueError: If address format is invalid
    """
    if ":" not in server:
        raise ValueError("Server address must be in format host:port")

    host, port_str = server.rsplit(":", 1)
    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"Invalid port number: {port_str}")
    if not host:
        raise ValueError("Server address is missing a host")
    if not 0 < port <= 65535:
        raise ValueError(f"Port out of range: {port}")

    return host, port


def configWithOverrides_load(args: argparse.Namespace) -> Config:
    """
    Load configuration and apply sender CLI overrides.

    Exits the process with status 1 when the configuration is unusable.

    Args:
        args: Parsed CLI args.

    Returns:
        Loaded config.
    """
    config_path: Path | None = Path(args.config) if args.config else None
    try:
        return ConfigLoader.configWithOverrides_load(
            file_path=config_path,
            server_address=getattr(args, "server", None),
            send_policy=getattr(args, "send_policy", None),
            deadzone=getattr(args, "deadzone", None),
            sample_interval_ms=getattr(args, "sample_interval_ms", None),
            slot_hint=getattr(args, "slot_hint", None),
            device=getattr(args, "device", None),
            sender_backend=getattr(args, "sender_backend", None),
            layout=getattr(args, "layout", None),
            log_level=getattr(args, "log_level", None),
        )
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Create a config.yml file or specify path with --config", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)


def serverAddressWithConfig_parse(config: Config) -> tuple[str, int]:
    """
    Parse and validate the relay address from config.

    Args:
        config: Loaded config.

    Returns:
        Host and port tuple.
    """
    try:
        return serverAddress_parse(config.sender.server_address)
    except ValueError as e:
        logger.error(f"Invalid server address: {e}")
        sys.exit(1)


def captureBackend_create(config: Config, layout: WireLayout) -> CaptureBackend:
    """
    Create the capture backend, exiting on failure.

    Args:
        config: Loaded config.
        layout: Active wire layout.

    Returns:
        Capture backend.
    """
    try:
        capture = senderBackend_create(config.sender.backend, config.sender.device, layout)
    except Exception as e:
        logger.error(f"Failed to initialize '{config.sender.backend}' capture backend: {e}")
        sys.exit(1)
    if not capture.connected_check():
        logger.warning(f"Controller {config.sender.device} not available yet; waiting for it")
    return capture


def network_establish(host: str, port: int) -> SenderNetwork:
    """
    Open the sender socket, exiting on failure.

    Args:
        host: Relay host.
        port: Relay port.

    Returns:
        Connected sender network.
    """
    network = SenderNetwork(host, port)
    try:
        network.connection_establish()
    except OSError as e:
        logger.error(f"Failed to open UDP socket to {host}:{port}: {e}")
        sys.exit(1)
    return network
