"""Health check runtime facade."""

from __future__ import annotations

import threading
from typing import Optional

from kazoo.client import KazooClient

from kafka_healthcheck import zookeeper
from kafka_healthcheck.check_loop import CheckLoop
from kafka_healthcheck.config import HealthCheckConfig
from kafka_healthcheck.health import (
    ClusterStatus,
    ClusterVerdict,
    HealthVerdict,
    ReasonCode,
    StatusPublisher,
    utc_now,
)
from kafka_healthcheck.kafka_manager import KafkaManager
from kafka_healthcheck.zookeeper import Registrar


class HealthCheckRuntime:
    """
    Facade for the health check process.

    Responsibilities:
    - Connect ZooKeeper and register the health check topic
    - Start the broker client and the background check loop
    - Expose the current broker and cluster verdicts
    - Start/stop lifecycle
    """

    def __init__(self, config: HealthCheckConfig, kafka: KafkaManager) -> None:
        """Initialize runtime with config and the broker client."""
        self._config = config
        self._kafka = kafka
        self._zookeeper: Optional[KazooClient] = None
        self._loop: Optional[CheckLoop] = None
        self._thread: Optional[threading.Thread] = None
        self.broker_status: StatusPublisher[HealthVerdict] = StatusPublisher(
            HealthVerdict.failed(ReasonCode.CONNECTION_ERROR, "no check completed yet")
        )
        self.cluster_status: StatusPublisher[ClusterVerdict] = StatusPublisher(
            ClusterVerdict(ClusterStatus.RED, "no check completed yet", utc_now())
        )

    def start(self) -> None:
        """Start all runtime components in correct order."""
        print("kafka_healthcheck starting", flush=True)
        self._zookeeper = zookeeper.connect(self._config.zookeeper_connect)
        registrar = Registrar(self._zookeeper)
        if not self._config.no_topic_creation:
            registrar.register_topic(self._config.topic_name, self._config.broker_id)
            print(f"kafka_healthcheck topic {self._config.topic_name} registered", flush=True)
        self._kafka.start()

        self._loop = CheckLoop(
            self._config,
            self._kafka,
            self.broker_status,
            self.cluster_status,
            registrar,
        )
        self._thread = threading.Thread(target=self._loop.run, name="check-loop", daemon=True)
        self._thread.start()
        print("kafka_healthcheck check loop started", flush=True)

    def stop(self) -> None:
        """Stop all runtime components gracefully."""
        print("kafka_healthcheck stopping", flush=True)
        if self._loop is not None:
            self._loop.stop()
        if self._thread is not None:
            self._thread.join(timeout=self._config.check_interval + self._config.check_timeout)
        self._kafka.stop()
        if self._zookeeper is not None:
            zookeeper.close(self._zookeeper)
            self._zookeeper = None
        print("kafka_healthcheck stopped", flush=True)
