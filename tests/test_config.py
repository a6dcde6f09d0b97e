"""Configuration loading tests."""

import json

import pytest

from kafka_healthcheck.config import ConfigRepository, HealthCheckConfig
from kafka_healthcheck.errors import ConfigError


def write(tmp_path, raw):
    path = tmp_path / "healthcheck.json"
    path.write_text(json.dumps(raw) if not isinstance(raw, str) else raw, encoding="utf-8")
    return str(path)


def test_minimal_config_uses_defaults(tmp_path):
    config = ConfigRepository(write(tmp_path, {"broker_id": 3, "zookeeper_connect": "zk:2181"})).load()

    assert config.topic_name == "broker-3-health-check"
    assert config.broker_port == 9092
    assert config.check_interval == 10.0
    assert config.check_timeout == 0.2
    assert config.partition is None
    assert config.no_topic_creation is False


def test_full_config(tmp_path):
    raw = {
        "broker_id": 1,
        "zookeeper_connect": "zk1:2181,zk2:2181/kafka",
        "broker_host": "kafka-1",
        "broker_port": 9093,
        "topic_name": "health-check",
        "partition": 0,
        "message_length": 32,
        "check_interval_ms": 1000,
        "retry_interval_ms": 250,
        "check_timeout_ms": 500,
        "data_wait_interval_ms": 10,
        "no_topic_creation": True,
        "status_server_host": "127.0.0.1",
        "status_server_port": 8080,
    }

    config = ConfigRepository(write(tmp_path, raw)).load()

    assert config == HealthCheckConfig(
        broker_id=1,
        zookeeper_connect="zk1:2181,zk2:2181/kafka",
        broker_host="kafka-1",
        broker_port=9093,
        topic_name="health-check",
        partition=0,
        message_length=32,
        check_interval=1.0,
        retry_interval=0.25,
        check_timeout=0.5,
        data_wait_interval=0.01,
        no_topic_creation=True,
        status_server_host="127.0.0.1",
        status_server_port=8080,
    )


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        ConfigRepository(str(tmp_path / "missing.json")).load()


def test_invalid_json(tmp_path):
    with pytest.raises(ConfigError, match="Invalid JSON"):
        ConfigRepository(write(tmp_path, "{broker_id")).load()


@pytest.mark.parametrize(
    "raw",
    [
        {"zookeeper_connect": "zk:2181"},
        {"broker_id": "one", "zookeeper_connect": "zk:2181"},
        {"broker_id": 1, "zookeeper_connect": "zk:2181", "check_interval_ms": 0},
        {"broker_id": 1, "zookeeper_connect": "zk:2181", "unknown": True},
    ],
)
def test_schema_violations(tmp_path, raw):
    with pytest.raises(ConfigError, match="schema validation"):
        ConfigRepository(write(tmp_path, raw)).load()
