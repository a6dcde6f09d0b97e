"""Background check loop: metadata evaluation, heartbeat, merge, publish."""

from __future__ import annotations

from enum import Enum
import threading
import time
from typing import Optional

from kafka_healthcheck.cluster import evaluate_cluster
from kafka_healthcheck.config import HealthCheckConfig
from kafka_healthcheck.errors import BrokerConnectionError, CoordinationError
from kafka_healthcheck.evaluator import evaluate
from kafka_healthcheck.health import (
    ClusterStatus,
    ClusterVerdict,
    HealthVerdict,
    ReasonCode,
    StatusPublisher,
    utc_now,
)
from kafka_healthcheck.heartbeat import probe
from kafka_healthcheck.metadata import ClusterAssignment, ClusterSnapshot
from kafka_healthcheck.zookeeper import Registrar


class CheckState(str, Enum):
    """Where the loop currently is within a cycle."""

    IDLE = "idle"
    CHECKING = "checking"
    EVALUATING = "evaluating"
    PROBING_HEARTBEAT = "probing_heartbeat"
    MERGING = "merging"
    PUBLISHED = "published"


def merge(metadata: HealthVerdict, heartbeat: Optional[HealthVerdict]) -> HealthVerdict:
    """Combine the metadata and heartbeat verdicts; a metadata failure wins."""
    if not metadata.ok or heartbeat is None:
        return metadata
    return heartbeat


class CheckLoop:
    """
    Runs one health check per ``check_interval`` until stopped.

    The only shared state with the status server is the two publishers; each
    cycle builds its verdicts locally and publishes them with a single swap.
    """

    def __init__(
        self,
        config: HealthCheckConfig,
        broker,
        broker_status: StatusPublisher[HealthVerdict],
        cluster_status: StatusPublisher[ClusterVerdict],
        registrar: Optional[Registrar] = None,
    ) -> None:
        """Initialize with config, a broker client and the status publishers."""
        self._config = config
        self._broker = broker
        self._broker_status = broker_status
        self._cluster_status = cluster_status
        self._registrar = registrar
        self._stop = threading.Event()
        self._last_reason: Optional[ReasonCode] = None
        self.state = CheckState.IDLE

    def run(self) -> None:
        """Check repeatedly until ``stop()`` is called."""
        print(f"check_loop started interval={self._config.check_interval}s", flush=True)
        while not self._stop.is_set():
            started = time.monotonic()
            try:
                self.run_once()
            except Exception as exc:  # noqa: BLE001
                self._publish(
                    HealthVerdict.failed(ReasonCode.CONNECTION_ERROR, f"check failed: {exc}"),
                    ClusterVerdict(ClusterStatus.RED, f"check failed: {exc}", utc_now()),
                )
            self.state = CheckState.IDLE
            self._stop.wait(max(0.0, self._config.check_interval - (time.monotonic() - started)))
        print("check_loop stopped", flush=True)

    def stop(self) -> None:
        """Ask the loop to exit after the current cycle."""
        self._stop.set()

    def run_once(self) -> HealthVerdict:
        """Run a single check cycle and publish its verdicts."""
        self.state = CheckState.CHECKING
        started = time.monotonic()
        snapshot, error = self._fetch_snapshot(started)
        if snapshot is None:
            detail = f"metadata unavailable: {error}"
            verdict = HealthVerdict.failed(ReasonCode.CONNECTION_ERROR, detail)
            self._publish(verdict, ClusterVerdict(ClusterStatus.RED, detail, utc_now()))
            return verdict

        assignment, zk_error = self._read_assignment()
        if assignment is not None:
            snapshot = snapshot.with_assignments(assignment)

        self.state = CheckState.EVALUATING
        metadata_verdict = evaluate(snapshot, self._config.topic_name, self._config.broker_id)

        heartbeat_verdict = None
        if metadata_verdict.ok:
            self.state = CheckState.PROBING_HEARTBEAT
            heartbeat_verdict = probe(
                self._broker,
                self._broker.consume(),
                self._config.topic_name,
                self._config.partition,
                self._config.message_length,
                self._config.check_timeout,
            )

        self.state = CheckState.MERGING
        verdict = merge(metadata_verdict, heartbeat_verdict)
        if zk_error is not None:
            cluster = ClusterVerdict(ClusterStatus.RED, f"registrations unavailable: {zk_error}", utc_now())
        else:
            cluster = evaluate_cluster(snapshot, assignment or ClusterAssignment())

        self._publish(verdict, cluster)
        return verdict

    def _fetch_snapshot(self, started: float) -> tuple[Optional[ClusterSnapshot], Optional[Exception]]:
        """Fetch metadata, retrying every ``retry_interval`` within one check interval."""
        while True:
            try:
                return self._broker.get_metadata(), None
            except BrokerConnectionError as exc:
                elapsed = time.monotonic() - started
                if elapsed + self._config.retry_interval > self._config.check_interval:
                    return None, exc
                print(f"check_loop metadata fetch failed, retrying: {exc}", flush=True)
                if self._stop.wait(self._config.retry_interval):
                    return None, exc

    def _read_assignment(self) -> tuple[Optional[ClusterAssignment], Optional[Exception]]:
        if self._registrar is None:
            return None, None
        try:
            return self._registrar.read_assignment(), None
        except CoordinationError as exc:
            print(f"check_loop zookeeper read failed: {exc}", flush=True)
            return None, exc

    def _publish(self, verdict: HealthVerdict, cluster: ClusterVerdict) -> None:
        self._broker_status.set(verdict)
        self._cluster_status.set(cluster)
        self.state = CheckState.PUBLISHED
        if verdict.reason != self._last_reason:
            print(f"check_loop published verdict reason={verdict.reason.value} detail={verdict.detail}", flush=True)
            self._last_reason = verdict.reason
