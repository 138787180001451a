"""pad2pad sender main entry point"""

import argparse
import logging
import threading

from pad2pad import __version__
from pad2pad.client.bootstrap import (
    captureBackend_create,
    configWithOverrides_load,
    network_establish,
    serverAddressWithConfig_parse,
)
from pad2pad.client.policy import sendPolicy_create
from pad2pad.client.sender import Sender
from pad2pad.common.log import logging_setup
from pad2pad.protocol.codec import StateCodec, layout_forName

logger = logging.getLogger(__name__)


def client_run(args: argparse.Namespace) -> None:
    """
    Run the pad2pad sender until interrupted

    Args:
        args: Parsed command line arguments
    """
    config = configWithOverrides_load(args)
    logging_setup(config.logging.level, config.logging.format, config.logging.file)

    host, port = serverAddressWithConfig_parse(config)
    layout = layout_forName(config.protocol.layout)

    logger.info(f"pad2pad sender v{__version__}")
    logger.info(f"Relay: {host}:{port}")
    logger.info(f"Protocol layout: {layout.name} ({layout.size} bytes)")
    logger.info(f"Send policy: {config.sender.send_policy.value}")
    logger.info(f"Sample interval: {config.sender.sample_interval_ms} ms")

    capture = captureBackend_create(config, layout)
    network = network_establish(host, port)
    sender = Sender(
        capture=capture,
        network=network,
        codec=StateCodec(layout),
        policy=sendPolicy_create(config.sender, layout),
        sample_interval=config.sender.sample_interval_ms / 1000.0,
        slot_hint=config.sender.slot_hint,
        reconnect_poll=config.sender.reconnect_poll_ms / 1000.0,
        stats_interval=config.sender.stats_interval_ms / 1000.0,
    )

    stop_event = threading.Event()
    logger.info("Sender running. Press Ctrl+C to stop.")
    try:
        sender.run(stop_event)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        stop_event.set()
        logger.info(
            f"Total packets sent: {sender.stats.packets_sent} "
            f"(errors: {sender.stats.send_errors}, suppressed: {sender.stats.suppressed})"
        )
        network.connection_close()
        capture.connection_close()
