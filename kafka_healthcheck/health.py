"""Health verdict types and the shared status holder."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Dict, Generic, TypeVar


class ReasonCode(str, Enum):
    """Why a broker verdict is what it is."""

    HEALTHY = "healthy"
    BROKER_MISSING = "broker_missing"
    TOPIC_MISSING = "topic_missing"
    PARTITION_LEADER_OFFLINE = "partition_leader_offline"
    PARTITION_UNDER_REPLICATED = "partition_under_replicated"
    PARTITION_OUT_OF_SYNC = "partition_out_of_sync"
    HEARTBEAT_TIMEOUT = "heartbeat_timeout"
    HEARTBEAT_MISMATCH = "heartbeat_mismatch"
    CONNECTION_ERROR = "connection_error"


class ClusterStatus(str, Enum):
    """Cluster-wide health state."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class HealthVerdict:
    """Outcome of one check cycle for the monitored broker."""

    ok: bool
    reason: ReasonCode
    detail: str
    evaluated_at: datetime

    @classmethod
    def healthy(cls, detail: str = "") -> "HealthVerdict":
        return cls(ok=True, reason=ReasonCode.HEALTHY, detail=detail, evaluated_at=utc_now())

    @classmethod
    def failed(cls, reason: ReasonCode, detail: str) -> "HealthVerdict":
        return cls(ok=False, reason=reason, detail=detail, evaluated_at=utc_now())

    def to_dict(self) -> Dict[str, object]:
        return {
            "ok": self.ok,
            "reason": self.reason.value,
            "detail": self.detail,
            "evaluated_at": self.evaluated_at.isoformat(),
        }


@dataclass(frozen=True)
class ClusterVerdict:
    """Outcome of one check cycle for the cluster as a whole."""

    status: ClusterStatus
    detail: str
    evaluated_at: datetime

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": self.status.value,
            "detail": self.detail,
            "evaluated_at": self.evaluated_at.isoformat(),
        }


V = TypeVar("V")


class StatusPublisher(Generic[V]):
    """
    Holds the latest published verdict.

    One writer (the check loop) replaces the verdict; any number of readers
    (HTTP handlers) fetch it. Verdicts are immutable, so the lock only guards
    the reference swap and readers never see a partially built value.
    """

    def __init__(self, initial: V) -> None:
        """Initialize with the verdict served before the first check completes."""
        self._lock = Lock()
        self._current = initial

    def set(self, verdict: V) -> None:
        """Atomically replace the current verdict."""
        with self._lock:
            self._current = verdict

    def get(self) -> V:
        """Return the current verdict."""
        with self._lock:
            return self._current
