#!/usr/bin/env python3
"""
Asana Pagination Engine

Turns a paged collection endpoint into a stream of decoded pages fetched by
a background worker while the caller consumes them.

    stream = list_all_tags()
    for page in stream:
        if page.error:
            ...
        for tag in page.items:
            ...

Every list endpoint answers {"data": [...], "next_page": {...} | null}. The
worker follows next_page.path until it is empty, an error occurs, or the
caller cancels the stream.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Sequence, Tuple, TypeVar
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .errors import AsanaClientError, AsanaDecodeError
from .infrastructure import AsanaTransport, format_opt_fields, load_json

# Configure logging
logger = logging.getLogger(__name__)

T = TypeVar("T")

# Capacity of the hand-off queue between worker and consumer
PAGE_QUEUE_SIZE = 1

# How often blocked workers and readers re-check for cancellation/completion
POLL_INTERVAL = 0.05


@dataclass(frozen=True)
class PageToken:
    """Continuation pointer taken from a list response's next_page member."""

    offset: str = ""
    path: str = ""
    uri: str = ""

    @property
    def has_more(self) -> bool:
        return bool(self.path)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["PageToken"]:
        if not data:
            return None
        return cls(
            offset=data.get("offset") or "",
            path=data.get("path") or "",
            uri=data.get("uri") or "",
        )


@dataclass
class Page(Generic[T]):
    """
    One decoded response of a paged collection.

    When error is set the page is the last one of its stream and items may
    be partially populated; check error before trusting items.
    """

    items: List[T] = field(default_factory=list)
    error: Optional[Exception] = None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


PageDecoder = Callable[[bytes], Tuple[List[T], Optional[PageToken]]]


def decode_page(
    body: bytes, factory: Callable[[Dict[str, Any]], T]
) -> Tuple[List[T], Optional[PageToken]]:
    """
    Decode one list response into its items and continuation token.

    Raises:
        AsanaDecodeError: If the body is malformed; items decoded before the
            failure are carried in partial_items
    """
    payload = load_json(body)
    if not isinstance(payload, dict):
        raise AsanaDecodeError("expecting a JSON object page envelope")

    data = payload.get("data") or []
    if not isinstance(data, list):
        raise AsanaDecodeError("expecting a JSON array in data")

    items: List[T] = []
    for raw in data:
        if not raw:
            continue
        try:
            items.append(factory(raw))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise AsanaDecodeError(f"unexpected item shape: {e}", partial_items=items) from e

    next_page = payload.get("next_page")
    if next_page is not None and not isinstance(next_page, dict):
        raise AsanaDecodeError("expecting a JSON object in next_page", partial_items=items)

    return items, PageToken.from_dict(next_page)


def with_opt_fields(path: str, opt_fields: Sequence[str]) -> str:
    """
    Make sure a request path carries the resource's sparse field selection.

    Continuation paths returned by the API normally echo opt_fields; when one
    does not, the selection is appended again.
    """
    if not opt_fields:
        return path

    parts = urlsplit(path)
    query = parse_qsl(parts.query, keep_blank_values=True)
    if any(key == "opt_fields" for key, _ in query):
        return path

    query.append(("opt_fields", format_opt_fields(opt_fields)))
    return urlunsplit(
        (parts.scheme, parts.netloc, parts.path, urlencode(query, safe=","), parts.fragment)
    )


class PageStream(Generic[T]):
    """
    Output stream and cancellation handle of one pagination worker.

    Iterate it to receive pages in fetch order; iteration ends once the
    worker has finished and every published page was read. cancel() may be
    called any number of times from any thread and never blocks.
    """

    def __init__(
        self,
        client: AsanaTransport,
        path: str,
        decode: PageDecoder,
        opt_fields: Sequence[str] = (),
        queue_size: int = PAGE_QUEUE_SIZE,
    ):
        self._client = client
        self._path = path
        self._decode = decode
        self._opt_fields = tuple(opt_fields)
        self._pages: "queue.Queue[Page[T]]" = queue.Queue(maxsize=queue_size)
        self._cancelled = threading.Event()
        self._done = threading.Event()
        self._start_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------ control

    def start(self) -> "PageStream[T]":
        """Spawn the worker. Calling it again is a no-op."""
        with self._start_lock:
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._run,
                    name=f"asana-pages:{self._path}",
                    daemon=True,
                )
                self._thread.start()
        return self

    def cancel(self) -> None:
        """Ask the worker to stop before its next fetch."""
        if not self._cancelled.is_set():
            logger.debug(f"Cancelling pagination of {self._path}")
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def done(self) -> bool:
        """True once the worker has exited (pages may still be unread)."""
        return self._done.is_set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker to exit. Returns True if it has."""
        if self._thread is None:
            return self._done.is_set()
        self._thread.join(timeout)
        return self._done.is_set()

    def __enter__(self) -> "PageStream[T]":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()

    # ---------------------------------------------------------------- consumer

    def __iter__(self) -> Iterator[Page[T]]:
        return self.start()

    def __next__(self) -> Page[T]:
        while True:
            try:
                return self._pages.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                # The worker publishes before it marks itself done
                if self._done.is_set() and self._pages.empty():
                    raise StopIteration

    def items(self) -> Iterator[T]:
        """
        Iterate over every item of every page.

        Raises:
            The error carried by the stream's error page, after yielding the
            items that page managed to decode
        """
        for page in self:
            yield from page.items
            page.raise_for_error()

    # ------------------------------------------------------------------ worker

    def _publish(self, page: Page[T]) -> bool:
        while not self._cancelled.is_set():
            try:
                self._pages.put(page, timeout=POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def _run(self) -> None:
        path = self._path
        page_number = 0
        try:
            while not self._cancelled.is_set():
                page_number += 1
                url = self._client.build_url(with_opt_fields(path, self._opt_fields))
                logger.debug(f"Fetching page {page_number}: {url}")

                try:
                    body, _ = self._client.authenticated_request("GET", url)
                except AsanaClientError as e:
                    logger.warning(f"Pagination of {self._path} stopped at page {page_number}: {e}")
                    self._publish(Page(error=e))
                    return

                try:
                    items, next_page = self._decode(body)
                except AsanaDecodeError as e:
                    logger.warning(f"Undecodable page {page_number} of {self._path}: {e}")
                    self._publish(Page(items=e.partial_items, error=e))
                    return

                if not self._publish(Page(items=items)):
                    return

                if next_page is None or not next_page.has_more:
                    logger.debug(f"Finished paginating {self._path}: {page_number} pages")
                    return
                path = next_page.path
        except Exception as e:
            logger.exception(f"Pagination worker for {self._path} crashed")
            self._publish(Page(error=e))
        finally:
            self._done.set()


def paginate(
    client: AsanaTransport,
    path: str,
    decode: PageDecoder,
    opt_fields: Sequence[str] = (),
) -> PageStream:
    """
    Start streaming a paged collection.

    Returns immediately; all network I/O happens on the stream's worker.

    Args:
        client: Transport used for every page request
        path: Initial resource path, including any query string
        decode: Resource page decoder: bytes -> (items, continuation token)
        opt_fields: Sparse field selection sent with every page request

    Returns:
        A started PageStream
    """
    return PageStream(client, path, decode, opt_fields).start()
