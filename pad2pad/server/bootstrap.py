"""Relay bootstrap helpers for config, logging, and backend wiring."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pad2pad.common.config import Config, ConfigLoader
from pad2pad.common.log import logging_setup
from pad2pad.input.backend import VirtualDeviceBackend
from pad2pad.input.factory import relayBackend_create
from pad2pad.protocol.codec import layout_forName

logger = logging.getLogger(__name__)


def configWithOverrides_load(args: argparse.Namespace) -> Config:
    """
    Load configuration and apply relay CLI overrides.

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
            host=getattr(args, "host", None),
            port=getattr(args, "port", None),
            max_sessions=getattr(args, "max_sessions", None),
            timeout_ms=getattr(args, "timeout_ms", None),
            relay_backend=getattr(args, "backend", None),
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


def loggingWithConfig_setup(config: Config) -> None:
    """
    Setup logging from config.

    Args:
        config: Loaded config (CLI log level already applied).
    """
    logging_setup(config.logging.level, config.logging.format, config.logging.file)


def deviceBackend_create(config: Config) -> VirtualDeviceBackend:
    """
    Create the virtual device backend, exiting on failure.

    Args:
        config: Loaded config.

    Returns:
        Virtual device backend.
    """
    try:
        device = relayBackend_create(config.relay.backend, layout_forName(config.protocol.layout))
    except Exception as e:
        logger.error(f"Failed to initialize '{config.relay.backend}' device backend: {e}")
        if config.relay.backend == "uinput":
            logger.error("Make sure the uinput module is loaded and /dev/uinput is writable")
        sys.exit(1)
    logger.info(f"Device backend: {config.relay.backend}")
    return device
