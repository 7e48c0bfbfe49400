"""
Health Monitoring HTTP Server for agenda-timer.

Serves the latest agenda snapshot over HTTP so displays and monitoring
can follow a meeting without reading the snapshot file.

Endpoints:
    GET /health     - Basic health check (200 OK if running)
    GET /status     - Latest AgendaSnapshot as JSON
    GET /metrics    - Prometheus-compatible metrics

Usage:
    from agenda_timer.output.health_server import HealthServer

    server = HealthServer(port=8080)
    server.set_monitor(agenda_monitor)
    server.start()
"""

import json
import logging
import threading
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class HealthRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for health endpoints."""

    # Class-level reference to status callback
    get_status: Optional[Callable[[], Optional[Dict[str, Any]]]] = None

    def log_message(self, format, *args):
        """Suppress default HTTP logging."""
        pass

    def do_GET(self):
        """Handle GET requests."""
        if self.path == '/health':
            self._handle_health()
        elif self.path == '/status':
            self._handle_status()
        elif self.path == '/metrics':
            self._handle_metrics()
        else:
            self.send_error(404, "Not Found")

    def _send(self, code: int, content_type: str, body: bytes):
        self.send_response(code)
        self.send_header('Content-Type', content_type)
        self.end_headers()
        self.wfile.write(body)

    def _handle_health(self):
        """Basic health check - returns 200 if server is running."""
        self._send(200, 'text/plain', b'OK\n')

    def _current_status(self) -> Optional[Dict[str, Any]]:
        return type(self).get_status() if type(self).get_status else None

    def _handle_status(self):
        """Return the latest snapshot as JSON."""
        try:
            status = self._current_status()
        except Exception as e:
            self._send(500, 'application/json', json.dumps({'error': str(e)}).encode())
            return
        if status is None:
            self._send(503, 'application/json', json.dumps({'error': 'No snapshot yet'}).encode())
            return
        self._send(200, 'application/json', json.dumps(status, indent=2).encode())

    def _handle_metrics(self):
        """Return Prometheus-compatible metrics."""
        try:
            status = self._current_status()
        except Exception as e:
            self._send(500, 'text/plain', f'# Error: {e}\n'.encode())
            return
        if status is None:
            self._send(503, 'text/plain', b'# No snapshot yet\n')
            return
        metrics = self._format_prometheus_metrics(status)
        self._send(200, 'text/plain; version=0.0.4', metrics.encode())

    def _format_prometheus_metrics(self, status: Dict[str, Any]) -> str:
        """Format snapshot as Prometheus metrics."""
        timer = status.get('timer') or {}
        overrun = status.get('overrun') or {}
        remaining = timer.get('secondsRemaining')
        lines = [
            '# HELP agenda_timer_seconds_remaining Seconds left on the active topic (negative when overtime)',
            '# TYPE agenda_timer_seconds_remaining gauge',
            f'agenda_timer_seconds_remaining {remaining if remaining is not None else "NaN"}',
            '',
            '# HELP agenda_timer_overtime Whether the active topic has overrun its allotted time (0/1)',
            '# TYPE agenda_timer_overtime gauge',
            f'agenda_timer_overtime {1 if timer.get("isOvertime") else 0}',
            '',
            '# HELP agenda_timer_topics Number of live topics on the agenda',
            '# TYPE agenda_timer_topics gauge',
            f'agenda_timer_topics {status.get("topic_count", 0)}',
            '',
            '# HELP agenda_timer_topics_completed Number of completed topics',
            '# TYPE agenda_timer_topics_completed gauge',
            f'agenda_timer_topics_completed {status.get("completed_count", 0)}',
            '',
            '# HELP agenda_timer_topics_overrun Topics starting at or after the scheduled end',
            '# TYPE agenda_timer_topics_overrun gauge',
            f'agenda_timer_topics_overrun {overrun.get("overrun_count", 0)}',
            '',
            '# HELP agenda_timer_polls_total Total timer samples taken',
            '# TYPE agenda_timer_polls_total counter',
            f'agenda_timer_polls_total {status.get("poll_count", 0)}',
            '',
            '# HELP agenda_timer_status Meeting status (1=planning, 2=running, 3=ended)',
            '# TYPE agenda_timer_status gauge',
        ]

        status_map = {'planning': 1, 'running': 2, 'ended': 3}
        lines.append(f'agenda_timer_status {status_map.get(status.get("status"), 0)}')

        active = timer.get('activeTopicId')
        if active is not None:
            safe_id = str(active).replace('\\', '\\\\').replace('"', '\\"')
            lines.extend([
                '',
                '# HELP agenda_timer_active_topic Active topic marker',
                '# TYPE agenda_timer_active_topic gauge',
                f'agenda_timer_active_topic{{topic="{safe_id}"}} 1',
            ])

        lines.append('')
        return '\n'.join(lines)


class HealthServer:
    """
    HTTP server for health monitoring.

    Runs in a background thread and serves whatever the connected
    monitor last computed.
    """

    def __init__(self, port: int = 8080, bind_address: str = '0.0.0.0'):
        """
        Initialize the health server.

        Args:
            port: HTTP port to listen on
            bind_address: Address to bind to (default: all interfaces)
        """
        self.port = port
        self.bind_address = bind_address
        self.server: Optional[HTTPServer] = None
        self.thread: Optional[threading.Thread] = None
        self.monitor = None
        self._running = False

    def set_monitor(self, monitor):
        """
        Connect to an AgendaMonitor for status reporting.

        Args:
            monitor: Any object with a `last_snapshot` attribute
        """
        self.monitor = monitor
        HealthRequestHandler.get_status = self._get_status

    def _get_status(self) -> Optional[Dict[str, Any]]:
        """Latest snapshot as a dict, or None before the first tick."""
        if not self.monitor:
            return None
        snapshot = getattr(self.monitor, 'last_snapshot', None)
        if snapshot is None:
            return None
        return snapshot.to_dict()

    def start(self):
        """Start the health server in a background thread."""
        if self._running:
            logger.warning("Health server already running")
            return

        try:
            self.server = HTTPServer(
                (self.bind_address, self.port),
                HealthRequestHandler
            )
            # Set timeout so handle_request doesn't block forever
            self.server.timeout = 1.0
            self._running = True

            self.thread = threading.Thread(
                target=self._serve,
                name="HealthServer",
                daemon=True
            )
            self.thread.start()

            logger.info(f"Health server started on http://{self.bind_address}:{self.port}")
            logger.info("  GET /health  - Health check")
            logger.info("  GET /status  - JSON snapshot")
            logger.info("  GET /metrics - Prometheus metrics")

        except OSError as e:
            logger.error(f"Failed to start health server: {e}")
            self._running = False

    def _serve(self):
        """Server loop (runs in background thread)."""
        while self._running and self.server is not None:
            try:
                self.server.handle_request()
            except Exception as e:
                if self._running:
                    logger.debug(f"Health request failed: {e}")

    def stop(self):
        """Stop the health server."""
        self._running = False
        if self.thread:
            self.thread.join(timeout=2.0)
            self.thread = None
        if self.server:
            self.server.server_close()
            self.server = None
        logger.info("Health server stopped")
