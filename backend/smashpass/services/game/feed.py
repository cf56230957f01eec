import logging
import threading
from concurrent.futures import Future
from typing import Callable, Dict, List, Optional

from .types import Item, Page


logger = logging.getLogger(__name__)

FetchPage = Callable[[int, int], Page]


class FeedUnavailable(Exception):
    """A page fetch failed. Retryable; the feed never retries on its own."""

    def __init__(self, page: int, cause: Optional[BaseException] = None):
        super().__init__(f'feed unavailable (page {page})')
        self.page = page
        self.cause = cause


class InlineExecutor:
    """Runs submitted work immediately in the caller's thread.

    Used under TESTING so fetches and votes complete deterministically,
    the same way stage timers run inline in tests.
    """

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)
        return future

    def shutdown(self, wait: bool = True) -> None:
        pass


class ItemFeed:
    """Paginated items exposed as one ordered sequence.

    Pages may complete in any order; they are buffered and appended to
    `loaded` strictly by page number. Completions that land after `close()`
    are dropped.
    """

    def __init__(self, fetch_page: FetchPage, executor, page_size: int = 10,
                 margin: int = 2, lock=None,
                 on_page: Optional[Callable[[Page], None]] = None,
                 on_error: Optional[Callable[[FeedUnavailable], None]] = None):
        self._fetch_page = fetch_page
        self._executor = executor
        self.page_size = page_size
        self.margin = margin
        self._lock = lock if lock is not None else threading.RLock()
        self._on_page = on_page
        self._on_error = on_error

        self.loaded: List[Item] = []
        self.current_page = 0
        self.total = 0
        self.error: Optional[FeedUnavailable] = None
        self.closed = False
        self._initialized = False
        self._in_flight: Dict[int, Future] = {}
        self._arrived: Dict[int, Page] = {}

    def initialize(self, first_page: Page) -> None:
        with self._lock:
            if self._initialized:
                raise RuntimeError('ItemFeed.initialize called twice')
            self._initialized = True
            self.loaded = list(first_page.items)
            self.current_page = first_page.page
            self.total = first_page.total
        if self._on_page:
            self._on_page(first_page)

    @property
    def in_flight(self) -> bool:
        return bool(self._in_flight)

    @property
    def exhausted(self) -> bool:
        return len(self.loaded) >= self.total

    def needs_prefetch(self, cursor: int) -> bool:
        with self._lock:
            if self.closed or self.exhausted:
                return False
            if (self.current_page + 1) in self._in_flight:
                return False
            return cursor >= len(self.loaded) - self.margin

    def item_at(self, cursor: int) -> Optional[Item]:
        """The item at `cursor`, or None while its page is still loading."""
        if 0 <= cursor < len(self.loaded):
            return self.loaded[cursor]
        return None

    def request_next_page(self) -> Future:
        return self.request_page(self.current_page + 1)

    def request_page(self, number: int) -> Future:
        with self._lock:
            pending = self._in_flight.get(number)
            if pending is not None:
                logger.debug('[feed-skip] page=%s already in flight', number)
                return pending
            if self.closed:
                raise RuntimeError('ItemFeed is closed')
            if self.error is not None and self.error.page == number:
                self.error = None
            logger.info('[feed-fetch] page=%s page_size=%s', number, self.page_size)
            future = self._executor.submit(self._fetch_page, number, self.page_size)
            self._in_flight[number] = future
            # Fires immediately when the future is already done (inline executor).
            future.add_done_callback(lambda f, n=number: self._on_done(n, f))
            return future

    def close(self) -> None:
        with self._lock:
            self.closed = True

    def _on_done(self, number: int, future: Future) -> None:
        # Listeners run after the lock is released so a slow one never
        # holds up events for the session.
        callbacks = []
        with self._lock:
            self._in_flight.pop(number, None)
            if self.closed:
                logger.info('[feed-stale] page=%s arrived after close; dropped', number)
                return
            exc = future.exception()
            if exc is not None:
                # Keep the earliest failed page; later pages cannot apply before it.
                if self.error is None or number <= self.error.page:
                    self.error = FeedUnavailable(number, exc)
                logger.warning('[feed-error] page=%s error=%r', number, exc)
                if self._on_error:
                    callbacks.append((self._on_error, self.error))
            else:
                page = future.result()
                if page.page != number:
                    logger.warning('[feed-mismatch] requested=%s received=%s', number, page.page)
                if number > self.current_page:
                    self._arrived[number] = page
                while (self.current_page + 1) in self._arrived:
                    ready = self._arrived.pop(self.current_page + 1)
                    self.loaded.extend(ready.items)
                    self.current_page += 1
                    if ready.total != self.total:
                        logger.info('[feed-total] ignoring changed total %s (kept %s)', ready.total, self.total)
                    logger.info('[feed-loaded] page=%s loaded=%s total=%s', self.current_page, len(self.loaded), self.total)
                    if self._on_page:
                        callbacks.append((self._on_page, ready))
        for callback, arg in callbacks:
            callback(arg)
