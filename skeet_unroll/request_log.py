from __future__ import annotations

import json
import sys
import traceback
import uuid
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, TextIO


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _truncate(text: str, *, limit: int) -> str:
    s = str(text or "")
    if limit <= 0:
        return ""
    if len(s) <= limit:
        return s
    return s[: max(0, limit - 1)] + "…"


class RequestLog:
    """
    JSONL logger shared by the request handler and the unroll pipeline.

    Each line is one JSON object ({ts, level, event, session_id, post_url?,
    data?}). Writes go to an append-only file or to a stream such as stdout.
    """

    def __init__(
        self,
        stream: TextIO | None = None,
        *,
        path: str | Path | None = None,
        session_id: str | None = None,
    ) -> None:
        self._path = Path(path) if path is not None else None
        self._session_id = (session_id or "").strip() or uuid.uuid4().hex
        self._owns_fp = self._path is not None
        self._fp: TextIO | None = None if self._owns_fp else (stream or sys.stdout)
        self._lock = Lock()

    @classmethod
    def open(cls, path: str | Path | None, *, session_id: str | None = None) -> "RequestLog":
        """Log to path (appending), or to stdout when path is None."""
        if path is None:
            return cls(session_id=session_id)
        log = cls(path=path, session_id=session_id)
        log._ensure_open()
        return log

    @property
    def session_id(self) -> str:
        return self._session_id

    def close(self) -> None:
        with self._lock:
            if self._fp is not None and self._owns_fp:
                try:
                    self._fp.flush()
                finally:
                    self._fp.close()
                self._fp = None

    def __enter__(self) -> "RequestLog":
        self._ensure_open()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def info(self, event: str, *, post_url: str | None = None, **data: Any) -> None:
        self.log("INFO", event, post_url=post_url, **data)

    def warning(self, event: str, *, post_url: str | None = None, **data: Any) -> None:
        self.log("WARN", event, post_url=post_url, **data)

    def error(self, event: str, *, post_url: str | None = None, **data: Any) -> None:
        self.log("ERROR", event, post_url=post_url, **data)

    def exception(
        self,
        event: str,
        *,
        exc: BaseException,
        post_url: str | None = None,
        **data: Any,
    ) -> None:
        err = {
            "type": type(exc).__name__,
            "message": _truncate(str(exc), limit=2000),
            "traceback": _truncate(
                "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
                limit=12000,
            ),
        }
        self.log("ERROR", event, post_url=post_url, error=err, **data)

    def log(self, level: str, event: str, *, post_url: str | None = None, **data: Any) -> None:
        lvl = (level or "").strip().upper() or "INFO"
        ev = (event or "").strip() or "event"

        record: dict[str, Any] = {
            "ts": _utc_now_iso(),
            "level": lvl,
            "event": ev,
            "session_id": self._session_id,
        }

        if post_url is not None:
            record["post_url"] = post_url

        if data:
            record["data"] = data

        self._write(record)

    def _ensure_open(self) -> None:
        if self._fp is not None or self._path is None:
            return

        with self._lock:
            if self._fp is not None:
                return
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fp = self._path.open("a", encoding="utf-8", newline="\n")

    def _write(self, record: dict[str, Any]) -> None:
        self._ensure_open()

        payload = json.dumps(
            record,
            ensure_ascii=False,
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )

        with self._lock:
            if self._fp is None:
                return
            self._fp.write(payload + "\n")
            self._fp.flush()
