"""Kafka health check package."""

__all__ = [
    "HealthCheckRuntime",
    "KafkaManager",
    "CheckLoop",
    "CheckState",
    "Registrar",
    "HealthServer",
    "ConfigRepository",
    "HealthCheckConfig",
    "StatusPublisher",
    "HealthVerdict",
    "ClusterVerdict",
    "ReasonCode",
    "ClusterStatus",
    "BrokerInfo",
    "PartitionInfo",
    "TopicInfo",
    "ClusterSnapshot",
    "ClusterAssignment",
    "evaluate",
    "evaluate_cluster",
    "probe",
    "ensure_registered",
    "ConfigError",
    "RegistrationError",
    "BrokerConnectionError",
    "CoordinationError",
]

from kafka_healthcheck.runtime import HealthCheckRuntime
from kafka_healthcheck.kafka_manager import KafkaManager
from kafka_healthcheck.check_loop import CheckLoop, CheckState
from kafka_healthcheck.zookeeper import Registrar, ensure_registered
from kafka_healthcheck.health_server import HealthServer
from kafka_healthcheck.config import ConfigRepository, HealthCheckConfig
from kafka_healthcheck.health import StatusPublisher, HealthVerdict, ClusterVerdict, ReasonCode, ClusterStatus
from kafka_healthcheck.metadata import BrokerInfo, PartitionInfo, TopicInfo, ClusterSnapshot, ClusterAssignment
from kafka_healthcheck.evaluator import evaluate
from kafka_healthcheck.cluster import evaluate_cluster
from kafka_healthcheck.heartbeat import probe
from kafka_healthcheck.errors import ConfigError, RegistrationError, BrokerConnectionError, CoordinationError
