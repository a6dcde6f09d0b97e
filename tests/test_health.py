"""Verdict and status publisher tests."""

import threading

from kafka_healthcheck.health import ClusterStatus, ClusterVerdict, HealthVerdict, ReasonCode, StatusPublisher, utc_now


def test_verdict_to_dict():
    verdict = HealthVerdict.failed(ReasonCode.TOPIC_MISSING, "no topic")

    body = verdict.to_dict()

    assert body["ok"] is False
    assert body["reason"] == "topic_missing"
    assert body["detail"] == "no topic"
    assert body["evaluated_at"].endswith("+00:00")


def test_cluster_verdict_to_dict():
    body = ClusterVerdict(ClusterStatus.YELLOW, "1 partition behind", utc_now()).to_dict()

    assert body["status"] == "yellow"


def test_publisher_returns_latest():
    publisher = StatusPublisher(HealthVerdict.failed(ReasonCode.CONNECTION_ERROR, "init"))
    latest = HealthVerdict.healthy("ok")

    publisher.set(latest)

    assert publisher.get() is latest


def test_concurrent_readers_never_see_a_torn_verdict():
    reasons = list(ReasonCode)
    verdicts = [
        HealthVerdict(ok=reason == ReasonCode.HEALTHY, reason=reason, detail=reason.value, evaluated_at=utc_now())
        for reason in reasons
    ]
    publisher = StatusPublisher(verdicts[0])
    stop = threading.Event()
    torn = []

    def read():
        while not stop.is_set():
            verdict = publisher.get()
            if verdict.detail != verdict.reason.value or verdict.ok != (verdict.reason == ReasonCode.HEALTHY):
                torn.append(verdict)

    readers = [threading.Thread(target=read) for _ in range(8)]
    for reader in readers:
        reader.start()
    for i in range(20000):
        publisher.set(verdicts[i % len(verdicts)])
    stop.set()
    for reader in readers:
        reader.join()

    assert torn == []
