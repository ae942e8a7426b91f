"""Upload helpers: file checks, retry with bounded exponential backoff, fixed-size batches."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar

import backoff
import httpx

from app.config import get_settings
from app.services.graph import GraphError

log = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

PHOTO_CONTENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        "video/mp4",
        "video/mpeg",
    }
)
DOCUMENT_CONTENT_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "text/plain",
        "text/csv",
    }
) | PHOTO_CONTENT_TYPES


def validate_file(
    filename: str | None,
    content_type: str | None,
    size: int,
    allowed: frozenset[str] = PHOTO_CONTENT_TYPES,
    max_size: int | None = None,
) -> str | None:
    """Error message for a file that may not be uploaded, or None when it is fine."""
    limit = max_size if max_size is not None else get_settings().max_upload_size_bytes
    if not (filename or "").strip():
        return "File name is required"
    if size <= 0:
        return f"{filename}: file is empty"
    if size > limit:
        return f"{filename}: file size exceeds {limit // (1024 * 1024)}MB limit"
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype not in allowed:
        return f"{filename}: file type {ctype or 'unknown'} is not allowed"
    return None


def is_retryable(exc: Exception) -> bool:
    """Network failures, timeouts and 5xx responses are worth another attempt."""
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, GraphError) and exc.is_server_error


def _log_backoff(details: dict) -> None:
    log.warning(
        "Upload attempt %s failed (%s); retrying in %.1fs",
        details["tries"],
        details.get("exception"),
        details["wait"],
    )


def upload_with_retry(fn: Callable[[], T], *, max_tries: int | None = None, cap_seconds: float | None = None) -> T:
    """Call fn until it succeeds, retrying only retryable failures.

    Waits 1s, 2s, 4s, ... between attempts, never more than cap_seconds.
    The last exception propagates once max_tries attempts have failed or a
    non-retryable error occurs.
    """
    settings = get_settings()
    tries = max_tries or settings.upload_max_retries
    cap = cap_seconds if cap_seconds is not None else settings.upload_backoff_cap_seconds

    @backoff.on_exception(
        backoff.expo,
        (httpx.TransportError, GraphError),
        max_tries=tries,
        giveup=lambda e: not is_retryable(e),
        jitter=None,
        on_backoff=_log_backoff,
        base=2,
        factor=1,
        max_value=cap,
    )
    def _attempt() -> T:
        return fn()

    return _attempt()


@dataclass
class BatchResult(Generic[T, R]):
    item: T
    value: R | None = None
    error: str | None = None
    exception: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def upload_in_batches(
    items: Sequence[T],
    upload_fn: Callable[[T], R],
    batch_size: int | None = None,
) -> list[BatchResult[T, R]]:
    """Run upload_fn over items, batch_size at a time, results in input order.
    One failed item never aborts the rest."""
    size = max(1, batch_size or get_settings().upload_batch_size)
    results: list[BatchResult[T, R]] = []

    def _run(item: T) -> BatchResult[T, R]:
        try:
            return BatchResult(item, value=upload_fn(item))
        except Exception as e:  # noqa: BLE001 - reported per item
            log.warning("Batch upload item failed: %s", e)
            return BatchResult(item, error=str(e) or e.__class__.__name__, exception=e)

    with ThreadPoolExecutor(max_workers=size) as pool:
        for start in range(0, len(items), size):
            batch = items[start:start + size]
            results.extend(pool.map(_run, batch))
    return results
