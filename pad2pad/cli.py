"""pad2pad unified command-line interface"""

import argparse
import sys
from typing import NoReturn, Optional, Sequence

from pad2pad import __version__
from pad2pad.common.types import SendPolicyName


def arguments_parse(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Parsed CLI arguments.
    """
    parser = argparse.ArgumentParser(
        prog="pad2pad",
        description="Relay gamepad state over UDP into virtual gamepads",
    )

    parser.add_argument("--version", action="version", version=f"pad2pad {__version__}")

    # Mode selection: --server means sender mode (stream to a relay)
    # No --server means run as relay
    parser.add_argument(
        "--server",
        type=str,
        metavar="HOST:PORT",
        default=None,
        help="Stream the local gamepad to the relay at HOST:PORT (sender mode). "
        "If omitted, run as relay.",
    )

    # Common options
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config file (default: search standard locations)",
    )

    parser.add_argument(
        "--layout",
        type=str,
        choices=["full", "compact"],
        default=None,
        help="Wire layout (overrides config; both ends must agree)",
    )

    parser.add_argument(
        "--backend",
        type=str,
        default=None,
        help="Device backend: relay 'uinput' or 'log', sender 'evdev' (overrides config)",
    )

    # Relay-specific options
    parser.add_argument(
        "--host", type=str, default=None, help="[Relay] Host address to bind to (overrides config)"
    )

    parser.add_argument(
        "--port", type=int, default=None, help="[Relay] UDP port to listen on (overrides config)"
    )

    parser.add_argument(
        "--max-sessions",
        type=int,
        default=None,
        dest="max_sessions",
        help="[Relay] Maximum concurrent senders (overrides config)",
    )

    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        dest="timeout_ms",
        help="[Relay] Silence in ms before a sender is evicted (overrides config)",
    )

    # Sender-specific options
    parser.add_argument(
        "--send-policy",
        type=str,
        choices=[policy.value for policy in SendPolicyName],
        default=None,
        dest="send_policy",
        help="[Sender] Transmit every sample or only on change (overrides config)",
    )

    parser.add_argument(
        "--deadzone",
        type=int,
        default=None,
        help="[Sender] Stick movement counted as a change in on_change mode (overrides config)",
    )

    parser.add_argument(
        "--sample-interval-ms",
        type=int,
        default=None,
        dest="sample_interval_ms",
        help="[Sender] Milliseconds between samples (overrides config)",
    )

    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="[Sender] Gamepad event device, e.g. /dev/input/event5 (overrides config)",
    )

    parser.add_argument(
        "--slot-hint",
        type=int,
        default=None,
        dest="slot_hint",
        help="[Sender] Preferred relay slot, advisory only (overrides config)",
    )

    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging (overrides config)"
    )

    parser.add_argument(
        "--info", action="store_true", help="Enable info logging (overrides config)"
    )

    parser.add_argument(
        "--warning", action="store_true", help="Enable warning logging (overrides config)"
    )

    parser.add_argument(
        "--error", action="store_true", help="Enable error logging (overrides config)"
    )

    parser.add_argument(
        "--critical", action="store_true", help="Enable critical logging (overrides config)"
    )

    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main entry point for unified pad2pad command

    Args:
        argv: Argument list (defaults to sys.argv[1:])
    """
    args = arguments_parse(argv)

    log_level_override: str | None = logLevelOverride_get(args)

    try:
        argsWithLogLevel_apply(args, log_level_override)
        if senderMode_isEnabled(args):
            senderMode_run(args)
        else:
            relayMode_run(args)
        sys.exit(0)

    except KeyboardInterrupt:
        print("\nShutting down...")
        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def logLevelOverride_get(args: argparse.Namespace) -> str | None:
    """
    Resolve explicit log level override flags.

    The most severe flag wins when several are given.

    Args:
        args: Parsed CLI args.

    Returns:
        Selected log level or None.
    """
    if args.critical:
        return "CRITICAL"
    if args.error:
        return "ERROR"
    if args.warning:
        return "WARNING"
    if args.info:
        return "INFO"
    if args.debug:
        return "DEBUG"
    return None


def argsWithLogLevel_apply(args: argparse.Namespace, log_level: str | None) -> None:
    """
    Apply optional log level override to args.

    Args:
        args: Parsed CLI args.
        log_level: Optional log level string.
    """
    if log_level is not None:
        setattr(args, "log_level", log_level)


def senderMode_isEnabled(args: argparse.Namespace) -> bool:
    """
    Determine whether CLI should run sender mode.

    Args:
        args: Parsed CLI args.

    Returns:
        True when sender mode should run.
    """
    return bool(args.server)


def senderMode_run(args: argparse.Namespace) -> None:
    """
    Run sender mode entrypoint.

    Args:
        args: Parsed CLI args.
    """
    from pad2pad.client.main import client_run

    # --backend names the capture backend in sender mode
    setattr(args, "sender_backend", args.backend)
    client_run(args)


def relayMode_run(args: argparse.Namespace) -> None:
    """
    Run relay mode entrypoint.

    Args:
        args: Parsed CLI args.
    """
    from pad2pad.server.main import server_run

    server_run(args)


if __name__ == "__main__":
    main()
