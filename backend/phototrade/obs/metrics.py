"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


REQUEST_COUNTER = Counter(
	"phototrade_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"phototrade_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"phototrade_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"phototrade_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

NOTIFY_FAILURES = Counter(
	"phototrade_notify_failures_total",
	"Real-time deliveries that raised and were dropped",
	["event"],
)

TRADES_PROPOSED = Counter(
	"phototrade_trades_proposed_total",
	"Trade proposals persisted",
)

TRADES_RESOLVED = Counter(
	"phototrade_trades_resolved_total",
	"Trade resolution attempts by outcome",
	["action", "result"],
)

FRIEND_OPS = Counter(
	"phototrade_friend_ops_total",
	"Friendship graph mutations",
	["action", "result"],
)

PHOTO_UPLOADS = Counter(
	"phototrade_photo_uploads_total",
	"Photo uploads by result",
	["result"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def notify_failed(event: str) -> None:
	NOTIFY_FAILURES.labels(event=event).inc()


def inc_trade_proposed() -> None:
	TRADES_PROPOSED.inc()


def inc_trade_resolved(action: str, result: str) -> None:
	TRADES_RESOLVED.labels(action=action, result=result).inc()


def inc_friend_op(action: str, result: str = "ok") -> None:
	FRIEND_OPS.labels(action=action, result=result).inc()


def inc_photo_upload(result: str) -> None:
	PHOTO_UPLOADS.labels(result=result).inc()
