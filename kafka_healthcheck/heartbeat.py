"""End-to-end heartbeat: produce a unique token and wait to consume it back."""

from __future__ import annotations

from dataclasses import dataclass
import queue
import secrets
import time
from typing import Optional

from kafka_healthcheck.errors import BrokerConnectionError
from kafka_healthcheck.health import HealthVerdict, ReasonCode


@dataclass(frozen=True)
class ConsumerEvent:
    """One item from the consumer channel: a message payload or an error."""

    payload: Optional[bytes] = None
    error: Optional[BaseException] = None


def new_token(length: int) -> bytes:
    """Generate a random heartbeat token of ``length`` bytes."""
    return secrets.token_bytes(length)


def drain(events: "queue.Queue[ConsumerEvent]") -> int:
    """Discard everything already queued; nothing there can carry a fresh token."""
    dropped = 0
    while True:
        try:
            events.get_nowait()
        except queue.Empty:
            return dropped
        dropped += 1


def probe(
    producer,
    events: "queue.Queue[ConsumerEvent]",
    topic: str,
    partition: Optional[int],
    length: int,
    timeout: float,
) -> HealthVerdict:
    """
    Produce a fresh token to ``topic`` and wait until it is consumed back.

    ``producer`` needs a ``produce(topic, payload, partition, timeout)`` method
    raising BrokerConnectionError on failure; it gets whatever time is left
    before the deadline. ``events`` is the consumer channel.
    The wait ends on the matching payload, on a consumer error, or when
    ``timeout`` seconds have passed since the probe started. Non-matching
    payloads are skipped.
    """
    deadline = time.monotonic() + timeout
    token = new_token(length)
    drain(events)

    try:
        producer.produce(topic, token, partition, timeout=deadline - time.monotonic())
    except BrokerConnectionError as exc:
        return HealthVerdict.failed(ReasonCode.CONNECTION_ERROR, f"produce to {topic} failed: {exc}")

    mismatched = 0
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        try:
            event = events.get(timeout=remaining)
        except queue.Empty:
            break

        if event.error is not None:
            return HealthVerdict.failed(ReasonCode.CONNECTION_ERROR, f"consume from {topic} failed: {event.error}")
        if event.payload == token:
            return HealthVerdict.healthy(f"heartbeat round trip on {topic}")
        mismatched += 1

    if mismatched:
        return HealthVerdict.failed(
            ReasonCode.HEARTBEAT_MISMATCH,
            f"{mismatched} messages on {topic} within {timeout:.3f}s, none matched the heartbeat",
        )
    return HealthVerdict.failed(ReasonCode.HEARTBEAT_TIMEOUT, f"no heartbeat on {topic} within {timeout:.3f}s")
