"""Cluster-wide health evaluation (green / yellow / red)."""

from __future__ import annotations

from typing import List

from kafka_healthcheck.evaluator import leader_offline, under_replicated, out_of_sync
from kafka_healthcheck.health import ClusterStatus, ClusterVerdict, utc_now
from kafka_healthcheck.metadata import ClusterAssignment, ClusterSnapshot


def evaluate_cluster(snapshot: ClusterSnapshot, assignment: ClusterAssignment) -> ClusterVerdict:
    """
    Grade the whole cluster from metadata plus the ZooKeeper registrations.

    Red: a registered broker or topic is missing, or a partition has no live
    leader. Yellow: some partition has fewer in-sync replicas than intended.
    """
    snapshot = snapshot.with_assignments(assignment)
    live_brokers = snapshot.broker_ids()
    red: List[str] = []
    yellow: List[str] = []

    for broker_id in sorted(assignment.broker_ids - live_brokers):
        red.append(f"broker {broker_id} registered but not in metadata")

    for topic_name in sorted(assignment.topics):
        if snapshot.topic(topic_name) is None:
            red.append(f"topic {topic_name} registered but not in metadata")

    for topic in snapshot.topics:
        for partition in sorted(topic.partitions, key=lambda p: p.id):
            where = f"{topic.name}/{partition.id}"
            if leader_offline(snapshot, partition):
                red.append(f"{where} leader {partition.leader} offline")
            elif out_of_sync(snapshot, partition) or under_replicated(snapshot, partition):
                yellow.append(f"{where} isr {sorted(partition.isr)} of {sorted(partition.intended_replicas)}")

    if red:
        return ClusterVerdict(ClusterStatus.RED, "; ".join(red + yellow), utc_now())
    if yellow:
        return ClusterVerdict(ClusterStatus.YELLOW, "; ".join(yellow), utc_now())
    return ClusterVerdict(ClusterStatus.GREEN, f"{len(snapshot.topics)} topics healthy", utc_now())
