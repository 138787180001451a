"""Configuration file loading and management"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pad2pad.common.types import SendPolicyName

DEFAULT_PORT: int = 11000
MAX_POLL_INTERVAL_MS: int = 100
MAX_SLOTS: int = 256  # slot hints are one byte


@dataclass
class RelayConfig:
    """Relay (consumer) configuration settings"""
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    max_sessions: int = 4
    timeout_ms: int = 5000
    poll_interval_ms: int = 100
    sweep_interval_ms: int = 1000
    stats_interval_ms: int = 2000
    backend: str = "uinput"


@dataclass
class SenderConfig:
    """Sender (producer) configuration settings"""
    server_address: str = f"127.0.0.1:{DEFAULT_PORT}"
    send_policy: SendPolicyName = SendPolicyName.ALWAYS
    deadzone: int = 500
    heartbeat_ms: int = 1000
    sample_interval_ms: int = 8  # ~120 Hz
    reconnect_poll_ms: int = 1000
    slot_hint: int = 0
    device: Optional[str] = None
    backend: str = "evdev"
    stats_interval_ms: int = 1000


@dataclass
class ProtocolConfig:
    """Protocol configuration settings"""
    layout: str = "full"


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Config:
    """Complete application configuration"""
    relay: RelayConfig
    sender: SenderConfig
    protocol: ProtocolConfig
    logging: LoggingConfig


class ConfigLoader:
    """Loads and parses configuration from YAML files"""

    DEFAULT_CONFIG_PATHS = [
        "config.yml",
        "~/.config/pad2pad/config.yml",
        "/etc/pad2pad/config.yml",
    ]

    @staticmethod
    def configFile_find() -> Optional[Path]:
        """
        Find configuration file in standard locations

        Returns:
            Path to config file, or None if not found
        """
        for config_path in ConfigLoader.DEFAULT_CONFIG_PATHS:
            path = Path(config_path).expanduser().resolve()
            if path.exists() and path.is_file():
                return path
        return None

    @staticmethod
    def yaml_load(file_path: Path) -> Dict[str, Any]:
        """
        Load YAML configuration file

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If file does not exist
            yaml.YAMLError: If file is not valid YAML
        """
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {file_path} must contain a YAML dictionary")

        return data

    @staticmethod
    def config_parse(data: Dict[str, Any]) -> Config:
        """
        Parse configuration dictionary into Config object

        Every key is optional; missing keys take the built-in defaults.

        Args:
            data: Raw configuration dictionary

        Returns:
            Parsed and validated Config object

        Raises:
            ValueError: If a value is out of range or a section is malformed
        """
        relay_data = ConfigLoader._section_get(data, "relay")
        defaults_relay = RelayConfig()
        relay = RelayConfig(
            host=str(relay_data.get("host", defaults_relay.host)),
            port=int(relay_data.get("port", defaults_relay.port)),
            max_sessions=int(relay_data.get("max_sessions", defaults_relay.max_sessions)),
            timeout_ms=int(relay_data.get("timeout_ms", defaults_relay.timeout_ms)),
            poll_interval_ms=int(relay_data.get("poll_interval_ms", defaults_relay.poll_interval_ms)),
            sweep_interval_ms=int(relay_data.get("sweep_interval_ms", defaults_relay.sweep_interval_ms)),
            stats_interval_ms=int(relay_data.get("stats_interval_ms", defaults_relay.stats_interval_ms)),
            backend=str(relay_data.get("backend", defaults_relay.backend)),
        )

        sender_data = ConfigLoader._section_get(data, "sender")
        defaults_sender = SenderConfig()
        sender = SenderConfig(
            server_address=str(sender_data.get("server_address", defaults_sender.server_address)),
            send_policy=ConfigLoader.sendPolicy_parse(
                sender_data.get("send_policy", defaults_sender.send_policy.value)
            ),
            deadzone=int(sender_data.get("deadzone", defaults_sender.deadzone)),
            heartbeat_ms=int(sender_data.get("heartbeat_ms", defaults_sender.heartbeat_ms)),
            sample_interval_ms=int(
                sender_data.get("sample_interval_ms", defaults_sender.sample_interval_ms)
            ),
            reconnect_poll_ms=int(
                sender_data.get("reconnect_poll_ms", defaults_sender.reconnect_poll_ms)
            ),
            slot_hint=int(sender_data.get("slot_hint", defaults_sender.slot_hint)),
            device=sender_data.get("device", defaults_sender.device),
            backend=str(sender_data.get("backend", defaults_sender.backend)),
            stats_interval_ms=int(
                sender_data.get("stats_interval_ms", defaults_sender.stats_interval_ms)
            ),
        )

        protocol_data = ConfigLoader._section_get(data, "protocol")
        protocol = ProtocolConfig(
            layout=str(protocol_data.get("layout", ProtocolConfig().layout)).lower(),
        )

        logging_data = ConfigLoader._section_get(data, "logging")
        defaults_logging = LoggingConfig()
        logging = LoggingConfig(
            level=str(logging_data.get("level", defaults_logging.level)),
            file=logging_data.get("file", defaults_logging.file),
            format=str(logging_data.get("format", defaults_logging.format)),
        )

        config = Config(relay=relay, sender=sender, protocol=protocol, logging=logging)
        ConfigLoader.config_validate(config)
        return config

    @staticmethod
    def sendPolicy_parse(value: Any) -> SendPolicyName:
        """
        Parse a send policy name

        Args:
            value: "always" or "on_change" (hyphens accepted)

        Returns:
            SendPolicyName

        Raises:
            ValueError: If the name is unknown
        """
        if isinstance(value, SendPolicyName):
            return value
        token = str(value).strip().lower().replace("-", "_")
        try:
            return SendPolicyName(token)
        except ValueError:
            choices = ", ".join(policy.value for policy in SendPolicyName)
            raise ValueError(f"sender.send_policy must be one of: {choices} (got '{value}')") from None

    @staticmethod
    def config_validate(config: Config) -> None:
        """
        Validate value ranges

        Args:
            config: Parsed configuration

        Raises:
            ValueError: Naming the first invalid key
        """
        relay = config.relay
        if not 0 <= relay.port <= 65535:
            raise ValueError(f"relay.port must be in 0..65535 (got {relay.port})")
        if not 1 <= relay.max_sessions <= MAX_SLOTS:
            raise ValueError(f"relay.max_sessions must be in 1..{MAX_SLOTS} (got {relay.max_sessions})")
        if relay.timeout_ms <= 0:
            raise ValueError(f"relay.timeout_ms must be positive (got {relay.timeout_ms})")
        if not 1 <= relay.poll_interval_ms <= MAX_POLL_INTERVAL_MS:
            raise ValueError(
                f"relay.poll_interval_ms must be in 1..{MAX_POLL_INTERVAL_MS} "
                f"(got {relay.poll_interval_ms})"
            )
        if relay.sweep_interval_ms <= 0:
            raise ValueError(f"relay.sweep_interval_ms must be positive (got {relay.sweep_interval_ms})")
        if relay.stats_interval_ms < 0:
            raise ValueError(f"relay.stats_interval_ms must not be negative (got {relay.stats_interval_ms})")

        sender = config.sender
        if sender.deadzone < 0:
            raise ValueError(f"sender.deadzone must not be negative (got {sender.deadzone})")
        if sender.heartbeat_ms < 0:
            raise ValueError(f"sender.heartbeat_ms must not be negative (got {sender.heartbeat_ms})")
        if sender.sample_interval_ms <= 0:
            raise ValueError(
                f"sender.sample_interval_ms must be positive (got {sender.sample_interval_ms})"
            )
        if sender.reconnect_poll_ms <= 0:
            raise ValueError(f"sender.reconnect_poll_ms must be positive (got {sender.reconnect_poll_ms})")
        if not 0 <= sender.slot_hint <= 0xFF:
            raise ValueError(f"sender.slot_hint must be in 0..255 (got {sender.slot_hint})")
        if sender.stats_interval_ms < 0:
            raise ValueError(
                f"sender.stats_interval_ms must not be negative (got {sender.stats_interval_ms})"
            )

        if config.protocol.layout not in ("full", "compact"):
            raise ValueError(f"protocol.layout must be 'full' or 'compact' (got '{config.protocol.layout}')")

    @staticmethod
    def config_load(file_path: Optional[Path] = None) -> Config:
        """
        Load configuration from file

        Args:
            file_path: Optional path to config file. If None, searches standard
                locations and falls back to built-in defaults.

        Returns:
            Parsed Config object

        Raises:
            FileNotFoundError: If an explicit config file does not exist
            ValueError: If config file is invalid
        """
        if file_path is None:
            file_path = ConfigLoader.configFile_find()
            if file_path is None:
                return ConfigLoader.config_parse({})

        data = ConfigLoader.yaml_load(file_path)
        return ConfigLoader.config_parse(data)

    @staticmethod
    def configWithOverrides_load(
        file_path: Optional[Path] = None,
        **overrides: Any
    ) -> Config:
        """
        Load configuration and apply command-line overrides

        Overrides set to None are ignored.

        Args:
            file_path: Optional path to config file
            **overrides: Key-value pairs to override config values

        Returns:
            Config object with overrides applied and re-validated

        Example:
            config = ConfigLoader.configWithOverrides_load(
                port=11001,
                send_policy="on_change"
            )
        """
        config = ConfigLoader.config_load(file_path)

        relay_keys = ("host", "port", "max_sessions", "timeout_ms", "relay_backend")
        for key in relay_keys:
            value = overrides.get(key)
            if value is not None:
                setattr(config.relay, "backend" if key == "relay_backend" else key, value)

        sender_keys = (
            "server_address", "deadzone", "sample_interval_ms", "slot_hint", "device", "sender_backend",
        )
        for key in sender_keys:
            value = overrides.get(key)
            if value is not None:
                setattr(config.sender, "backend" if key == "sender_backend" else key, value)
        if overrides.get("send_policy") is not None:
            config.sender.send_policy = ConfigLoader.sendPolicy_parse(overrides["send_policy"])

        if overrides.get("layout") is not None:
            config.protocol.layout = str(overrides["layout"]).lower()
        if overrides.get("log_level") is not None:
            config.logging.level = overrides["log_level"]

        ConfigLoader.config_validate(config)
        return config

    @staticmethod
    def _section_get(data: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = data.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Config section '{name}' must be a mapping")
        return section
