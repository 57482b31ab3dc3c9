"""Logging setup plus the optional remote log sink.

Records keep the INFO / WARNING / ERROR vocabulary and add SUCCESS for
completed posts. When a sink URL is configured every record is also POSTed
as JSON to that URL. Records are queued by a QueueHandler and delivered in
order by a single QueueListener thread; sink failures never reach the caller.
"""

from __future__ import annotations

import atexit
import copy
import logging
import logging.handlers
import queue
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# records from the HTTP stack would feed back into the sink
_IGNORED_LOGGERS = ("urllib3", "requests")

_installed: Dict[str, "WebhookLogSink"] = {}


def log_payload(record: logging.LogRecord) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
        "level": record.levelname,
        "message": record.getMessage(),
    }
    context = getattr(record, "context", None)
    if isinstance(context, dict):
        payload.update(context)
    if record.exc_info and record.exc_info[1] is not None:
        payload.setdefault("error", str(record.exc_info[1]))
    return payload


def _skip_http_stack(record: logging.LogRecord) -> bool:
    return not record.name.startswith(_IGNORED_LOGGERS)


class WebhookLogHandler(logging.Handler):
    """POSTs each record as JSON. Runs on the listener thread, never the caller's."""

    def __init__(self, url: str, *, timeout: int = 10, level: int = logging.INFO):
        super().__init__(level=level)
        self.url = url
        self.timeout = timeout
        self._warned = False
        self.addFilter(_skip_http_stack)

    def emit(self, record: logging.LogRecord) -> None:
        payload = getattr(record, "sink_payload", None)
        if payload is None:
            try:
                payload = log_payload(record)
            except Exception:
                self.handleError(record)
                return
        self.deliver(payload)

    def deliver(self, payload: Dict[str, Any]) -> bool:
        try:
            resp = requests.post(self.url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            return True
        except (requests.exceptions.RequestException, TypeError, ValueError) as e:
            if not self._warned:
                self._warned = True
                sys.stderr.write(f"Failed to send log to webhook: {e}\n")
            return False


class SinkQueueHandler(logging.handlers.QueueHandler):
    """Freezes the JSON payload at log time so exception details survive queuing."""

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        payload = log_payload(record)
        record = copy.copy(record)
        record.sink_payload = payload
        record.msg = payload["message"]
        record.args = None
        record.exc_info = None
        record.exc_text = None
        return record


class WebhookLogSink:
    """Root-logger QueueHandler plus the listener thread that drains it."""

    def __init__(self, url: str, *, timeout: int = 10, level: int = logging.INFO):
        self.url = url
        self.queue: "queue.Queue[logging.LogRecord]" = queue.Queue()
        self.handler = WebhookLogHandler(url, timeout=timeout, level=level)
        self.queue_handler = SinkQueueHandler(self.queue)
        self.queue_handler.setLevel(level)
        self.queue_handler.addFilter(_skip_http_stack)
        self.listener = logging.handlers.QueueListener(self.queue, self.handler, respect_handler_level=True)
        self._running = False

    def start(self) -> None:
        if self._running:
            return
        self.listener.start()
        logging.getLogger().addHandler(self.queue_handler)
        self._running = True

    def stop(self) -> None:
        """Detach from the root logger and deliver everything still queued."""
        if not self._running:
            return
        logging.getLogger().removeHandler(self.queue_handler)
        self.listener.stop()
        self._running = False
        _installed.pop(self.url, None)


def configure_logging(
    *,
    log_file: Optional[str] = "dispatch.log",
    sink_url: Optional[str] = None,
    level: int = logging.INFO,
) -> None:
    handlers: list = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
    if sink_url:
        install_webhook_sink(sink_url)


def install_webhook_sink(url: str, *, timeout: int = 10) -> WebhookLogSink:
    """Start (once per URL) a sink that is flushed when the interpreter exits."""
    sink = _installed.get(url)
    if sink is None:
        sink = WebhookLogSink(url, timeout=timeout)
        sink.start()
        _installed[url] = sink
        atexit.register(sink.stop)
    return sink
