"""ZooKeeper registration and cluster assignment lookups, built on kazoo."""

from __future__ import annotations

import json
from typing import Dict, FrozenSet

from kazoo.client import KazooClient
from kazoo.exceptions import KazooException, NodeExistsError, NoNodeError
from kazoo.handlers.threading import KazooTimeoutError

from kafka_healthcheck.errors import CoordinationError, RegistrationError
from kafka_healthcheck.metadata import ClusterAssignment

BROKER_IDS_PATH = "/brokers/ids"
BROKER_TOPICS_PATH = "/brokers/topics"
TOPIC_CONFIG_PATH = "/config/topics"


def connect(hosts: str, timeout: float = 10.0) -> KazooClient:
    """Start a ZooKeeper session. A chroot suffix in ``hosts`` is honoured."""
    client = KazooClient(hosts=hosts, timeout=timeout)
    try:
        client.start(timeout=timeout)
    except (KazooException, KazooTimeoutError) as exc:
        client.close()
        raise RegistrationError(f"Unable to connect to ZooKeeper at {hosts}: {exc}") from exc
    print(f"zookeeper connected to {hosts}", flush=True)
    return client


def close(client: KazooClient) -> None:
    client.stop()
    client.close()


def ensure_registered(client: KazooClient, path: str, data: bytes = b"") -> bool:
    """
    Make sure ``path`` exists, creating it (and its parents) when absent.

    Returns True only when this call created the node. A concurrent creator
    winning the race counts as success; any other failure raises
    RegistrationError.
    """
    try:
        if client.exists(path):
            return False
        client.create(path, data, makepath=True)
    except NodeExistsError:
        return False
    except KazooException as exc:
        raise RegistrationError(f"Unable to create ZooKeeper path {path}: {exc}") from exc
    print(f"zookeeper created {path}", flush=True)
    return True


class Registrar:
    """
    Registers the health check topic and reads broker/topic registrations.

    Topic registration writes the same znodes a broker-side topic creation
    would: the topic config and a single-partition assignment on the
    monitored broker.
    """

    def __init__(self, client: KazooClient) -> None:
        self._client = client

    def register_topic(self, topic: str, broker_id: int) -> None:
        """Register ``topic`` with one partition assigned to ``broker_id``."""
        config = {"version": 1, "config": {}}
        assignment = {"version": 1, "partitions": {"0": [broker_id]}}
        ensure_registered(self._client, f"{TOPIC_CONFIG_PATH}/{topic}", _encode(config))
        ensure_registered(self._client, f"{BROKER_TOPICS_PATH}/{topic}", _encode(assignment))

    def read_assignment(self) -> ClusterAssignment:
        """Return the registered broker ids and every topic's replica assignment."""
        try:
            broker_ids = frozenset(int(name) for name in self._client.get_children(BROKER_IDS_PATH))
            topics: Dict[str, Dict[int, FrozenSet[int]]] = {}
            for name in self._client.get_children(BROKER_TOPICS_PATH):
                try:
                    data, _ = self._client.get(f"{BROKER_TOPICS_PATH}/{name}")
                except NoNodeError:
                    # deleted between listing and reading
                    continue
                topics[name] = parse_partition_assignment(data)
        except (KazooException, KazooTimeoutError) as exc:
            raise CoordinationError(f"Unable to read cluster registrations: {exc}") from exc
        return ClusterAssignment(broker_ids=broker_ids, topics=topics)


def parse_partition_assignment(data: bytes) -> Dict[int, FrozenSet[int]]:
    """Parse a ``/brokers/topics/<topic>`` znode into partition -> replica ids."""
    try:
        raw = json.loads(data.decode("utf-8"))
        return {
            int(partition): frozenset(int(r) for r in replicas)
            for partition, replicas in raw.get("partitions", {}).items()
        }
    except (ValueError, AttributeError, TypeError) as exc:
        raise CoordinationError(f"Invalid topic assignment data: {exc}") from exc


def _encode(value: dict) -> bytes:
    return json.dumps(value, separators=(",", ":")).encode("utf-8")
