"""Classify a cluster metadata snapshot into a broker health verdict."""

from __future__ import annotations

from typing import Callable, Optional, Tuple

from kafka_healthcheck.health import HealthVerdict, ReasonCode
from kafka_healthcheck.metadata import ClusterSnapshot, PartitionInfo, TopicInfo

# A failed check yields (reason, detail); None means the check passed.
Failure = Optional[Tuple[ReasonCode, str]]


def broker_missing(snapshot: ClusterSnapshot, broker_id: int) -> Failure:
    if broker_id not in snapshot.broker_ids():
        return ReasonCode.BROKER_MISSING, f"broker {broker_id} not in cluster metadata"
    return None


def topic_missing(snapshot: ClusterSnapshot, topic_name: str) -> Failure:
    topic = snapshot.topic(topic_name)
    if topic is None:
        return ReasonCode.TOPIC_MISSING, f"topic {topic_name} not in cluster metadata"
    if not topic.partitions:
        return ReasonCode.TOPIC_MISSING, f"topic {topic_name} has no partitions"
    return None


def leader_offline(snapshot: ClusterSnapshot, partition: PartitionInfo) -> bool:
    """The partition leader is not among the live brokers."""
    return partition.leader not in snapshot.broker_ids()


def out_of_sync(snapshot: ClusterSnapshot, partition: PartitionInfo) -> bool:
    """Some listed replica is missing from the in-sync set."""
    return not set(partition.replicas) <= partition.isr


def under_replicated(snapshot: ClusterSnapshot, partition: PartitionInfo) -> bool:
    """Fewer in-sync replicas than the intended replication factor."""
    return len(partition.isr) < len(partition.intended_replicas)


PartitionCheck = Callable[[ClusterSnapshot, PartitionInfo], bool]

# Order is precedence: the first check failing on any partition wins.
PARTITION_CHECKS: Tuple[Tuple[ReasonCode, PartitionCheck], ...] = (
    (ReasonCode.PARTITION_LEADER_OFFLINE, leader_offline),
    (ReasonCode.PARTITION_OUT_OF_SYNC, out_of_sync),
    (ReasonCode.PARTITION_UNDER_REPLICATED, under_replicated),
)


def partition_failure(snapshot: ClusterSnapshot, topic: TopicInfo) -> Failure:
    """Run the partition checks in precedence order over partitions sorted by id."""
    partitions = sorted(topic.partitions, key=lambda p: p.id)
    for reason, check in PARTITION_CHECKS:
        for partition in partitions:
            if check(snapshot, partition):
                return reason, _describe(topic.name, partition)
    return None


def evaluate(snapshot: ClusterSnapshot, topic_name: str, broker_id: int) -> HealthVerdict:
    """
    Return the metadata verdict for ``broker_id`` and its health check topic.

    The checks run in a fixed order and the first failure decides the reason,
    so identical snapshots always produce the same reason code.
    """
    failure = broker_missing(snapshot, broker_id) or topic_missing(snapshot, topic_name)
    if failure is None:
        failure = partition_failure(snapshot, snapshot.topic(topic_name))  # type: ignore[arg-type]

    if failure is None:
        return HealthVerdict.healthy(f"metadata ok for topic {topic_name}")

    reason, detail = failure
    return HealthVerdict.failed(reason, detail)


def _describe(topic_name: str, partition: PartitionInfo) -> str:
    return (
        f"topic {topic_name} partition {partition.id}: leader={partition.leader} "
        f"replicas={sorted(set(partition.replicas))} isr={sorted(partition.isr)} "
        f"assigned={sorted(partition.intended_replicas)}"
    )
