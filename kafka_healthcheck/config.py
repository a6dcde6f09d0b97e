"""Health check configuration model and repository."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import json

import jsonschema

from kafka_healthcheck.errors import ConfigError

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "healthcheck_config.schema.json"


@dataclass(frozen=True)
class HealthCheckConfig:
    """Immutable configuration shared by the check loop and the status server."""

    broker_id: int
    zookeeper_connect: str
    broker_host: str = "localhost"
    broker_port: int = 9092
    topic_name: str = ""
    partition: Optional[int] = None
    message_length: int = 100
    check_interval: float = 10.0
    retry_interval: float = 5.0
    check_timeout: float = 0.2
    data_wait_interval: float = 0.02
    no_topic_creation: bool = False
    status_server_host: str = "0.0.0.0"
    status_server_port: int = 8000

    def __post_init__(self) -> None:
        if not self.topic_name:
            object.__setattr__(self, "topic_name", f"broker-{self.broker_id}-health-check")


class ConfigRepository:
    """Loads configuration from a local JSON file."""

    def __init__(self, path: str, schema_path: Optional[str] = None) -> None:
        """Initialize with config file path and optional schema path."""
        self._path = Path(path)
        self._schema_path = Path(schema_path) if schema_path else SCHEMA_PATH

    def load(self) -> HealthCheckConfig:
        """Load and validate health check configuration."""
        if not self._path.exists():
            raise ConfigError(f"Config file not found: {self._path}")

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in config file: {exc}") from exc

        self._validate(raw)

        return HealthCheckConfig(
            broker_id=raw["broker_id"],
            zookeeper_connect=raw["zookeeper_connect"],
            broker_host=raw.get("broker_host", "localhost"),
            broker_port=raw.get("broker_port", 9092),
            topic_name=raw.get("topic_name", ""),
            partition=raw.get("partition"),
            message_length=raw.get("message_length", 100),
            check_interval=_seconds(raw, "check_interval_ms", 10000),
            retry_interval=_seconds(raw, "retry_interval_ms", 5000),
            check_timeout=_seconds(raw, "check_timeout_ms", 200),
            data_wait_interval=_seconds(raw, "data_wait_interval_ms", 20),
            no_topic_creation=raw.get("no_topic_creation", False),
            status_server_host=raw.get("status_server_host", "0.0.0.0"),
            status_server_port=raw.get("status_server_port", 8000),
        )

    def _validate(self, raw: dict) -> None:
        """Validate config against the JSON Schema."""
        try:
            schema = json.loads(self._schema_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"Unable to read config schema {self._schema_path}: {exc}") from exc

        try:
            jsonschema.validate(instance=raw, schema=schema)
        except jsonschema.ValidationError as exc:
            raise ConfigError(f"Config schema validation failed: {exc.message}") from exc


def _seconds(raw: dict, key: str, default_ms: int) -> float:
    return raw.get(key, default_ms) / 1000
