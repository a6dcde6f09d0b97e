"""Broker client for the health check, built on kafka-python."""

from __future__ import annotations

import queue
import socket
import threading
from typing import Dict, Iterable, List, Optional

from kafka import KafkaAdminClient, KafkaConsumer, KafkaProducer, TopicPartition
from kafka.errors import KafkaError

from kafka_healthcheck.errors import BrokerConnectionError
from kafka_healthcheck.heartbeat import ConsumerEvent
from kafka_healthcheck.metadata import BrokerInfo, ClusterSnapshot, PartitionInfo, TopicInfo

CLIENT_ID = "kafka-healthcheck"
MAX_PENDING_EVENTS = 1000


def snapshot_from_metadata(cluster: Dict[str, object], topics: Iterable[Dict[str, object]]) -> ClusterSnapshot:
    """Build a snapshot from ``describe_cluster()`` and ``describe_topics()`` results."""
    brokers = tuple(
        BrokerInfo(id=int(item["node_id"]), host=str(item["host"]), port=int(item["port"]))
        for item in cluster.get("brokers", [])  # type: ignore[union-attr]
    )
    topic_infos = []
    for item in topics:
        partitions = tuple(
            PartitionInfo(
                id=int(part["partition"]),
                leader=int(part["leader"]),
                replicas=tuple(int(r) for r in part["replicas"]),
                isr=frozenset(int(r) for r in part["isr"]),
            )
            for part in item.get("partitions", [])  # type: ignore[union-attr]
        )
        topic_infos.append(TopicInfo(name=str(item["topic"]), partitions=partitions))
    return ClusterSnapshot(brokers=brokers, topics=tuple(topic_infos))


class KafkaManager:
    """
    Talks to the monitored broker.

    - Fetch cluster metadata
    - Produce heartbeat messages
    - Feed consumed messages and errors of the health check topic to a channel
    """

    def __init__(
        self,
        host: str,
        port: int,
        topic: str,
        data_wait_interval: float,
        retry_interval: float = 5.0,
        produce_timeout: float = 0.2,
        request_timeout: float = 5.0,
    ) -> None:
        """
        Initialize with the monitored broker address and health check topic.

        ``produce_timeout`` caps how long a single produce may block; it should
        not exceed the heartbeat timeout.
        """
        self._host = host
        self._port = port
        self._bootstrap = f"{host}:{port}"
        self._topic = topic
        self._data_wait_interval = data_wait_interval
        self._retry_interval = retry_interval
        self._produce_timeout = produce_timeout
        self._request_timeout = request_timeout
        self._admin: Optional[KafkaAdminClient] = None
        self._producer: Optional[KafkaProducer] = None
        self._events: "queue.Queue[ConsumerEvent]" = queue.Queue(maxsize=MAX_PENDING_EVENTS)
        self._stop = threading.Event()
        self._consumer_thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the background consumer of the health check topic."""
        if self._consumer_thread is not None:
            return
        self._stop.clear()
        self._consumer_thread = threading.Thread(
            target=self._consume_forever, name="heartbeat-consumer", daemon=True
        )
        self._consumer_thread.start()
        print(f"kafka_manager consuming {self._topic} from {self._bootstrap}", flush=True)

    def stop(self) -> None:
        """Stop the consumer and close all clients."""
        self._stop.set()
        if self._consumer_thread is not None:
            self._consumer_thread.join(timeout=self._request_timeout)
            self._consumer_thread = None
        self._close_admin()
        self._close_producer()
        print("kafka_manager stopped", flush=True)

    def get_metadata(self) -> ClusterSnapshot:
        """Fetch a fresh cluster snapshot."""
        if not self._can_connect():
            raise BrokerConnectionError(f"Kafka not reachable at {self._bootstrap}")
        try:
            admin = self._admin_client()
            cluster = admin.describe_cluster()
            topics = admin.describe_topics()
        except KafkaError as exc:
            self._close_admin()
            raise BrokerConnectionError(f"Metadata request to {self._bootstrap} failed: {exc}") from exc
        return snapshot_from_metadata(cluster, topics)

    def produce(
        self,
        topic: str,
        payload: bytes,
        partition: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Write one message and wait at most ``timeout`` seconds for the acknowledgement."""
        if timeout is None:
            timeout = self._produce_timeout
        try:
            future = self._producer_client().send(topic, value=payload, partition=partition)
            future.get(timeout=max(0.0, timeout))
        except KafkaError as exc:
            # the pending request may still be in flight; do not wait for it
            self._close_producer(timeout=0)
            raise BrokerConnectionError(f"Produce to {topic} failed: {exc}") from exc

    def consume(self) -> "queue.Queue[ConsumerEvent]":
        """Return the channel of consumed payloads and consumer errors."""
        return self._events

    def _admin_client(self) -> KafkaAdminClient:
        if self._admin is None:
            self._admin = KafkaAdminClient(
                bootstrap_servers=self._bootstrap,
                client_id=CLIENT_ID,
                request_timeout_ms=int(self._request_timeout * 1000),
            )
        return self._admin

    def _producer_client(self) -> KafkaProducer:
        if self._producer is None:
            self._producer = KafkaProducer(
                bootstrap_servers=self._bootstrap,
                client_id=CLIENT_ID,
                acks="all",
                retries=0,
                max_block_ms=_millis(self._produce_timeout),
                request_timeout_ms=_millis(self._produce_timeout),
            )
        return self._producer

    def _close_admin(self) -> None:
        if self._admin is not None:
            admin, self._admin = self._admin, None
            try:
                admin.close()
            except KafkaError as exc:
                print(f"kafka_manager admin close failed: {exc}", flush=True)

    def _close_producer(self, timeout: Optional[float] = None) -> None:
        if self._producer is not None:
            producer, self._producer = self._producer, None
            try:
                producer.close(timeout=self._request_timeout if timeout is None else timeout)
            except KafkaError as exc:
                print(f"kafka_manager producer close failed: {exc}", flush=True)

    def _consume_forever(self) -> None:
        """
        Consumer thread: push every record and error of the topic to the channel.

        One consumer is kept for as long as it works. While the topic has no
        partitions the same consumer re-checks every ``retry_interval``; after
        an error it is closed and rebuilt ``retry_interval`` later.
        """
        consumer: Optional[KafkaConsumer] = None
        assigned = False
        poll_ms = max(1, int(self._data_wait_interval * 1000))
        while not self._stop.is_set():
            try:
                if consumer is None:
                    consumer = self._new_consumer()
                    assigned = False
                if not assigned:
                    assigned = self._assign_to_end(consumer)
                    if not assigned:
                        self._stop.wait(self._retry_interval)
                        continue
                for records in consumer.poll(timeout_ms=poll_ms).values():
                    for record in records:
                        self._publish(ConsumerEvent(payload=record.value))
            except KafkaError as exc:
                self._publish(ConsumerEvent(error=exc))
                self._close_consumer(consumer)
                consumer = None
                self._stop.wait(self._retry_interval)
        self._close_consumer(consumer)

    def _new_consumer(self) -> KafkaConsumer:
        return KafkaConsumer(
            bootstrap_servers=self._bootstrap,
            client_id=CLIENT_ID,
            group_id=None,
            enable_auto_commit=False,
        )

    def _assign_to_end(self, consumer: KafkaConsumer) -> bool:
        """Assign every topic partition and fix the end offsets; False while the topic is absent."""
        partitions = consumer.partitions_for_topic(self._topic)
        if not partitions:
            return False
        assignment: List[TopicPartition] = [TopicPartition(self._topic, p) for p in sorted(partitions)]
        consumer.assign(assignment)
        consumer.seek_to_end(*assignment)
        # seek_to_end is lazy; resolve now so a heartbeat produced before the next poll is not skipped
        for tp in assignment:
            consumer.position(tp)
        return True

    def _close_consumer(self, consumer: Optional[KafkaConsumer]) -> None:
        if consumer is None:
            return
        try:
            consumer.close()
        except (KafkaError, OSError) as exc:
            print(f"kafka_manager consumer close failed: {exc}", flush=True)

    def _publish(self, event: ConsumerEvent) -> None:
        """Enqueue without blocking; the oldest pending event gives way when full."""
        while True:
            try:
                self._events.put_nowait(event)
                return
            except queue.Full:
                try:
                    self._events.get_nowait()
                except queue.Empty:
                    pass

    def _can_connect(self) -> bool:
        """Attempt a TCP connection to the broker host:port."""
        try:
            with socket.create_connection((self._host, self._port), timeout=1):
                return True
        except OSError:
            return False


def _millis(seconds: float) -> int:
    return max(1, int(seconds * 1000))
