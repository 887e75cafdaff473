import json
import logging
import logging.handlers
import queue
import sys
import time
import uuid
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict, Optional

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

LOGGER_NAME = "ratewatch"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        rid = request_id_ctx.get()
        record.request_id = rid or "-"
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        base: Dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "time": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "request_id": getattr(record, "request_id", "-"),
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def init_logging(debug: bool = False) -> None:
    root = logging.getLogger()
    root.handlers.clear()
    level = logging.DEBUG if debug else logging.INFO
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)


class _DroppingQueueHandler(logging.handlers.QueueHandler):
    """QueueHandler that drops records instead of blocking when the queue is full."""

    def __init__(self, q: "queue.Queue[logging.LogRecord]"):
        super().__init__(q)
        self.dropped = 0

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            self.dropped += 1


class FileLogSink:
    """Append-only log file fed through a bounded queue.

    Lines look like ``[2024-05-01 12:00:00] Endpoint: Nala (...), Status: 200``.
    Records are formatted on a listener thread so a slow disk never stalls the
    polling loop; ``stop()`` drains whatever is still queued and closes the file.
    """

    def __init__(
        self,
        path: Path,
        *,
        max_queue: int = 1000,
        logger_name: str = LOGGER_NAME,
    ):
        self.path = Path(path)
        self._logger_name = logger_name
        self._queue: "queue.Queue[logging.LogRecord]" = queue.Queue(maxsize=max_queue)
        self._queue_handler = _DroppingQueueHandler(self._queue)
        self._file_handler: Optional[logging.FileHandler] = None
        self._listener: Optional[logging.handlers.QueueListener] = None

    @property
    def dropped(self) -> int:
        return self._queue_handler.dropped

    @property
    def running(self) -> bool:
        return self._listener is not None

    def start(self) -> None:
        if self._listener is not None:
            return
        if self.path.parent and not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file_handler = logging.FileHandler(self.path, mode="a", encoding="utf-8")
        self._file_handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(message)s", datefmt=TIMESTAMP_FORMAT)
        )
        self._listener = logging.handlers.QueueListener(
            self._queue, self._file_handler, respect_handler_level=False
        )
        self._listener.start()
        logging.getLogger(self._logger_name).addHandler(self._queue_handler)

    def stop(self) -> None:
        if self._listener is None:
            return
        logging.getLogger(self._logger_name).removeHandler(self._queue_handler)
        self._listener.stop()  # drains the queue
        self._listener = None
        if self._file_handler is not None:
            self._file_handler.flush()
            self._file_handler.close()
            self._file_handler = None

    def __enter__(self) -> "FileLogSink":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()


async def request_context_middleware(request, call_next):  # type: ignore
    rid = str(uuid.uuid4())
    token = request_id_ctx.set(rid)
    logger = logging.getLogger("ratewatch.request")
    logger.debug("request start")
    try:
        response = await call_next(request)
        return response
    finally:
        logger.debug("request end")
        request_id_ctx.reset(token)
