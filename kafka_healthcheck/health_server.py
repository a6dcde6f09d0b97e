"""Status endpoint server for the health check."""

from __future__ import annotations

from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
import json
from typing import Callable

from kafka_healthcheck.health import ClusterStatus, ClusterVerdict, HealthVerdict


class HealthHandler(BaseHTTPRequestHandler):
    """HTTP handler that renders the current broker or cluster verdict."""

    def do_GET(self) -> None:  # noqa: N802
        if self.path in ("/", "/health"):
            verdict = self.server.get_broker_verdict()  # type: ignore[attr-defined]
            self._send(200 if verdict.ok else 500, verdict.to_dict())
        elif self.path == "/cluster":
            cluster = self.server.get_cluster_verdict()  # type: ignore[attr-defined]
            self._send(503 if cluster.status == ClusterStatus.RED else 200, cluster.to_dict())
        else:
            self.send_response(404)
            self.end_headers()

    def _send(self, status: int, payload: dict) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        return


class HealthServer(ThreadingHTTPServer):
    """HTTP server wrapper that exposes the verdict callbacks."""

    daemon_threads = True

    def __init__(
        self,
        host: str,
        port: int,
        get_broker_verdict: Callable[[], HealthVerdict],
        get_cluster_verdict: Callable[[], ClusterVerdict],
    ) -> None:
        self.get_broker_verdict = get_broker_verdict
        self.get_cluster_verdict = get_cluster_verdict
        super().__init__((host, port), HealthHandler)
