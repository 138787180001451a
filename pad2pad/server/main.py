"""pad2pad relay main entry point"""

import argparse
import logging
import sys

from pad2pad import __version__
from pad2pad.server.bootstrap import (
    configWithOverrides_load,
    deviceBackend_create,
    loggingWithConfig_setup,
)
from pad2pad.server.runtime import relayRuntime_create

logger = logging.getLogger(__name__)


def server_run(args: argparse.Namespace) -> None:
    """
    Run the pad2pad relay until interrupted

    Args:
        args: Parsed command line arguments
    """
    config = configWithOverrides_load(args)
    loggingWithConfig_setup(config)

    logger.info(f"pad2pad relay v{__version__}")
    logger.info(f"Listening on {config.relay.host}:{config.relay.port}")
    logger.info(f"Protocol layout: {config.protocol.layout}")
    logger.info(f"Max senders: {config.relay.max_sessions}")
    logger.info(f"Sender timeout: {config.relay.timeout_ms} ms")

    device = deviceBackend_create(config)
    runtime = relayRuntime_create(config, device)

    try:
        runtime.runtime_start()
    except OSError as e:
        logger.error(f"Failed to start UDP server: {e}")
        device.connection_close()
        sys.exit(1)

    logger.info("Relay running. Press Ctrl+C to stop.")
    healthy = True
    try:
        healthy = runtime.runtime_wait()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        runtime.runtime_stop()
        runtime.stats_log()
        device.connection_close()

    if not healthy:
        sys.exit(1)
