"""Event sinks that notify listeners about review data updates."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import requests

from reviewpulse.core.config import settings


class EventSink(Protocol):
    """Abstract sink contract."""

    def publish(self, event: dict) -> None:  # pragma: no cover - interface
        ...

    def close(self) -> None:  # pragma: no cover - interface
        ...


class NullEventSink:
    """No-op sink used when notifications are disabled."""

    def publish(self, event: dict) -> None:
        return None

    def close(self) -> None:
        return None


class FileEventSink:
    """Appends events to newline-delimited JSON for downstream consumers."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def publish(self, event: dict) -> None:
        payload = json.dumps(_stamped(event), separators=(",", ":"), sort_keys=True, default=str)
        with self._lock, self.path.open("a", encoding="utf-8") as handle:
            handle.write(payload)
            handle.write("\n")

    def close(self) -> None:
        return None


class WebhookEventSink:
    """POSTs batches of events as a JSON array to a listener URL."""

    def __init__(self, url: str, *, batch_size: int = 25, session: requests.Session | None = None) -> None:
        self._url = url
        self._batch_size = max(batch_size, 1)
        self._buffer: list[dict] = []
        self._lock = threading.Lock()
        self._session = session or requests.Session()

    def publish(self, event: dict) -> None:
        with self._lock:
            self._buffer.append(_stamped(event))
            if len(self._buffer) >= self._batch_size:
                self._flush_locked()

    def close(self) -> None:
        with self._lock:
            self._flush_locked()
        self._session.close()

    def _flush_locked(self) -> None:
        if not self._buffer:
            return
        body = json.dumps(self._buffer, separators=(",", ":"), sort_keys=True, default=str)
        response = self._session.post(
            self._url,
            data=body.encode("utf-8"),
            headers={"Content-Type": "application/json"},
            timeout=30,
        )
        if response.status_code >= 400:
            raise RuntimeError(f"Webhook delivery failed ({response.status_code}): {response.text}")
        self._buffer.clear()


def _stamped(event: dict) -> dict:
    if "timestamp" in event:
        return event
    return {**event, "timestamp": datetime.now(timezone.utc).isoformat()}


def sink_from_settings() -> EventSink:
    """Factory to construct an event sink based on app settings."""

    backend = settings.event_sink_backend.lower().strip()
    if backend == "file":
        return FileEventSink(settings.event_sink_path)
    if backend == "webhook":
        if not settings.event_sink_webhook_url:
            raise ValueError("Webhook backend requires REVIEWPULSE_EVENT_SINK_WEBHOOK_URL")
        return WebhookEventSink(settings.event_sink_webhook_url, batch_size=settings.event_sink_batch_size)
    if backend in {"off", "none", "disabled"}:
        return NullEventSink()
    raise ValueError(f"Unsupported event sink backend: {settings.event_sink_backend}")
