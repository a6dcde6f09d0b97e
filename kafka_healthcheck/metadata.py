"""Cluster metadata snapshot types."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Mapping, Optional, Tuple


@dataclass(frozen=True)
class BrokerInfo:
    """A live broker as reported by cluster metadata."""

    id: int
    host: str
    port: int


@dataclass(frozen=True)
class PartitionInfo:
    """
    A single topic partition.

    ``assigned_replicas`` is the replica assignment registered in ZooKeeper,
    when known. It defines the intended replication factor.
    """

    id: int
    leader: int
    replicas: Tuple[int, ...]
    isr: FrozenSet[int]
    assigned_replicas: Optional[FrozenSet[int]] = None

    @property
    def intended_replicas(self) -> FrozenSet[int]:
        if self.assigned_replicas is not None:
            return self.assigned_replicas
        return frozenset(self.replicas)


@dataclass(frozen=True)
class TopicInfo:
    """A topic and its partitions."""

    name: str
    partitions: Tuple[PartitionInfo, ...] = ()


@dataclass(frozen=True)
class ClusterAssignment:
    """Brokers and partition assignments registered in ZooKeeper."""

    broker_ids: FrozenSet[int] = frozenset()
    topics: Mapping[str, Mapping[int, FrozenSet[int]]] = field(default_factory=dict)


@dataclass(frozen=True)
class ClusterSnapshot:
    """
    Immutable view of cluster metadata fetched for one check cycle.

    Brokers and topics keep the order the broker reported them in.
    """

    brokers: Tuple[BrokerInfo, ...] = ()
    topics: Tuple[TopicInfo, ...] = ()

    def broker_ids(self) -> FrozenSet[int]:
        return frozenset(broker.id for broker in self.brokers)

    def topic(self, name: str) -> Optional[TopicInfo]:
        """Return the topic with the given name, if present."""
        for topic in self.topics:
            if topic.name == name:
                return topic
        return None

    def with_assignments(self, assignment: ClusterAssignment) -> "ClusterSnapshot":
        """Return a copy whose partitions carry the ZooKeeper replica assignment."""
        topics = []
        for topic in self.topics:
            assigned: Dict[int, FrozenSet[int]] = dict(assignment.topics.get(topic.name, {}))
            partitions = tuple(
                replace(partition, assigned_replicas=assigned[partition.id])
                if partition.id in assigned
                else partition
                for partition in topic.partitions
            )
            topics.append(replace(topic, partitions=partitions))
        return replace(self, topics=tuple(topics))
