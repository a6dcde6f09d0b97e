"""Shared fixtures: synthetic configs, metadata snapshots and in-memory fakes."""

from __future__ import annotations

import queue
import threading
from typing import Dict, List, Optional

import pytest
from kazoo.exceptions import NodeExistsError, NoNodeError

from kafka_healthcheck.config import HealthCheckConfig
from kafka_healthcheck.errors import BrokerConnectionError
from kafka_healthcheck.heartbeat import ConsumerEvent
from kafka_healthcheck.metadata import BrokerInfo, ClusterSnapshot, PartitionInfo, TopicInfo


def make_config(**overrides) -> HealthCheckConfig:
    values = dict(
        broker_id=1,
        zookeeper_connect="localhost:2181",
        topic_name="health-check",
        message_length=100,
        check_interval=0.05,
        retry_interval=0.01,
        check_timeout=0.05,
        data_wait_interval=0.001,
        no_topic_creation=True,
        status_server_port=8000,
    )
    values.update(overrides)
    return HealthCheckConfig(**values)


def partition(id, leader, replicas, isr, assigned=None) -> PartitionInfo:
    return PartitionInfo(
        id=id,
        leader=leader,
        replicas=tuple(replicas),
        isr=frozenset(isr),
        assigned_replicas=frozenset(assigned) if assigned is not None else None,
    )


TWO_BROKERS = (
    BrokerInfo(id=2, host="10.0.0.5", port=9092),
    BrokerInfo(id=1, host="localhost", port=9092),
)


def healthy_snapshot(topic_name: str = "health-check") -> ClusterSnapshot:
    return ClusterSnapshot(
        brokers=TWO_BROKERS,
        topics=(
            TopicInfo("some-other-topic", (partition(1, 1, [1], [1]),)),
            TopicInfo(topic_name, (partition(2, 1, [1, 2], [1, 2]),)),
        ),
    )


def out_of_sync_snapshot() -> ClusterSnapshot:
    return ClusterSnapshot(
        brokers=TWO_BROKERS,
        topics=(TopicInfo("some-topic", (partition(1, 2, [2, 1], [2]),)),),
    )


def under_replicated_snapshot() -> ClusterSnapshot:
    return ClusterSnapshot(
        brokers=TWO_BROKERS,
        topics=(TopicInfo("some-topic", (partition(2, 2, [2], [2]),)),),
    )


def in_sync_snapshot() -> ClusterSnapshot:
    return ClusterSnapshot(
        brokers=TWO_BROKERS,
        topics=(TopicInfo("some-topic", (partition(1, 2, [2, 1], [2, 1]),)),),
    )


def offline_snapshot() -> ClusterSnapshot:
    return ClusterSnapshot(
        brokers=(BrokerInfo(id=1, host="localhost", port=9092),),
        topics=(TopicInfo("some-topic", (partition(1, 2, [1], []),)),),
    )


def snapshot_without_broker() -> ClusterSnapshot:
    return ClusterSnapshot(
        brokers=(BrokerInfo(id=2, host="10.0.0.5", port=9092),),
        topics=(TopicInfo("some-other-topic", (partition(1, 2, [], []),)),),
    )


def snapshot_without_topic() -> ClusterSnapshot:
    return ClusterSnapshot(brokers=(BrokerInfo(id=1, host="localhost", port=9092),), topics=())


class FakeBroker:
    """
    In-memory broker client.

    Produced payloads are echoed to the consumer channel unless ``echo`` is
    off; ``noise`` payloads are delivered ahead of each echo.
    """

    def __init__(self, snapshot: Optional[ClusterSnapshot] = None, echo: bool = True) -> None:
        self.snapshot = snapshot
        self.echo = echo
        self.noise: List[bytes] = []
        self.metadata_failures = 0
        self.metadata_calls = 0
        self.produce_error: Optional[Exception] = None
        self.produced: List[tuple] = []
        self.produce_timeouts: List[Optional[float]] = []
        self.events: "queue.Queue[ConsumerEvent]" = queue.Queue()
        self.started = False
        self.stopped = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def get_metadata(self) -> ClusterSnapshot:
        self.metadata_calls += 1
        if self.metadata_failures:
            self.metadata_failures -= 1
            raise BrokerConnectionError("connection refused")
        if self.snapshot is None:
            raise BrokerConnectionError("connection refused")
        return self.snapshot

    def produce(
        self, topic: str, payload: bytes, partition: Optional[int] = None, timeout: Optional[float] = None
    ) -> None:
        self.produced.append((topic, payload, partition))
        self.produce_timeouts.append(timeout)
        if self.produce_error is not None:
            raise self.produce_error
        for item in self.noise:
            self.events.put(ConsumerEvent(payload=item))
        if self.echo:
            self.events.put(ConsumerEvent(payload=payload))

    def consume(self) -> "queue.Queue[ConsumerEvent]":
        return self.events


class FakeZookeeper:
    """
    Thread-safe in-memory stand-in for a started KazooClient.

    ``create_barrier`` makes concurrent creators meet after their existence
    check so that both race on the create call.
    """

    def __init__(self, create_barrier: Optional[threading.Barrier] = None) -> None:
        self.nodes: Dict[str, bytes] = {}
        self.create_error: Optional[Exception] = None
        self.read_error: Optional[Exception] = None
        self.closed = False
        self._barrier = create_barrier
        self._lock = threading.Lock()

    def exists(self, path: str):
        with self._lock:
            return {"path": path} if path in self.nodes else None

    def create(self, path: str, value: bytes = b"", makepath: bool = False) -> str:
        if self._barrier is not None:
            self._barrier.wait(timeout=5)
        if self.create_error is not None:
            raise self.create_error
        with self._lock:
            if path in self.nodes:
                raise NodeExistsError()
            self.nodes[path] = value
        return path

    def get_children(self, path: str) -> List[str]:
        if self.read_error is not None:
            raise self.read_error
        prefix = path.rstrip("/") + "/"
        with self._lock:
            return sorted({p[len(prefix):].split("/")[0] for p in self.nodes if p.startswith(prefix)})

    def get(self, path: str):
        if self.read_error is not None:
            raise self.read_error
        with self._lock:
            if path not in self.nodes:
                raise NoNodeError()
            return self.nodes[path], None

    def stop(self) -> None:
        self.closed = True

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def config() -> HealthCheckConfig:
    return make_config()


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker(healthy_snapshot("health-check"))


@pytest.fixture
def zk() -> FakeZookeeper:
    return FakeZookeeper()
