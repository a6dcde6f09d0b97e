"""Kafka health check entrypoint."""

from __future__ import annotations

import asyncio
import os
import threading

from kafka_healthcheck.config import ConfigRepository
from kafka_healthcheck.errors import ConfigError
from kafka_healthcheck.health_server import HealthServer
from kafka_healthcheck.kafka_manager import KafkaManager
from kafka_healthcheck.runtime import HealthCheckRuntime


async def _run(runtime: HealthCheckRuntime) -> None:
    """Run the health check runtime and keep the loop alive."""
    runtime.start()
    try:
        while True:
            await asyncio.sleep(1)
    finally:
        runtime.stop()


def main() -> None:
    """Application entrypoint for the Kafka health check."""
    config_path = os.getenv("HEALTHCHECK_CONFIG")
    if not config_path:
        raise ConfigError("HEALTHCHECK_CONFIG is required")

    config = ConfigRepository(config_path).load()
    kafka = KafkaManager(
        config.broker_host,
        config.broker_port,
        config.topic_name,
        config.data_wait_interval,
        retry_interval=config.retry_interval,
        produce_timeout=config.check_timeout,
    )
    runtime = HealthCheckRuntime(config, kafka)

    server = HealthServer(
        config.status_server_host,
        config.status_server_port,
        runtime.broker_status.get,
        runtime.cluster_status.get,
    )
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    print(f"health_server listening on {config.status_server_host}:{config.status_server_port}", flush=True)

    try:
        asyncio.run(_run(runtime))
    finally:
        server.shutdown()


if __name__ == "__main__":
    main()
