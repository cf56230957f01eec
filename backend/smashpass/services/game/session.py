import functools
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from .feed import FeedUnavailable, ItemFeed
from .recorder import DecisionRecorder
from .types import Decision, Item, Page, Screen


logger = logging.getLogger(__name__)


class InvalidTransition(Exception):
    """An event arrived that the current screen does not accept."""

    def __init__(self, event: str, screen: Screen, message: Optional[str] = None):
        super().__init__(message or f'{event} is not allowed on screen {screen.value}')
        self.event = event
        self.screen = screen


class ItemNotLoaded(InvalidTransition):
    pass


def _event(method):
    """Run an event handler atomically and notify the change listener after."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            self.touch()
            result = method(self, *args, **kwargs)
        self._notify()
        return result
    return wrapper


class GameSession:
    """One player's pass through the feed.

    Screens and transitions:
      playing --decision_made--> confirming
      confirming --confirm(False)--> playing
      confirming --confirm(True)--> showing_result (vote recorded, maybe prefetch)
      showing_result --advance--> playing | game_over
      showing_result | game_over --open_stats--> showing_your_stats
      showing_your_stats --close_stats--> the screen stats were opened from
    """

    def __init__(self, code: str, fetch_page, sink, executor, page_size: int = 10,
                 margin: int = 2, on_change: Optional[Callable[['GameSession'], None]] = None):
        self.code = code
        self._lock = threading.RLock()
        self._on_change = on_change
        self.recorder = DecisionRecorder(sink, executor, lock=self._lock)
        self.feed = ItemFeed(
            fetch_page, executor, page_size=page_size, margin=margin, lock=self._lock,
            on_page=self._page_arrived, on_error=self._page_failed,
        )
        self.screen = Screen.PLAYING
        self.pending_decision = Decision.UNDECIDED
        self.last_decision = Decision.UNDECIDED
        self.cursor = 0
        self.history: List[Tuple[Any, Decision]] = []
        self._stats_origin: Optional[Screen] = None
        self._started = False
        self.last_active = time.time()

    # ---- lifecycle ----

    def start(self, first_page: Page) -> None:
        with self._lock:
            self.feed.initialize(first_page)
            self._started = True
            if self.feed.total <= 0:
                self.screen = Screen.GAME_OVER
            logger.info('[session-start] code=%s total=%s screen=%s', self.code, self.feed.total, self.screen.value)

    def end(self) -> None:
        with self._lock:
            self.feed.close()
            logger.info('[session-end] code=%s cursor=%s', self.code, self.cursor)

    def touch(self) -> None:
        self.last_active = time.time()

    @property
    def alive(self) -> bool:
        return self._started and not self.feed.closed

    @property
    def total(self) -> int:
        return self.feed.total

    @property
    def current_item(self) -> Optional[Item]:
        return self.feed.item_at(self.cursor)

    @property
    def is_loading(self) -> bool:
        return self.screen is not Screen.GAME_OVER and self.current_item is None

    @property
    def at_end(self) -> bool:
        return self.cursor >= self.total - 1

    # ---- events ----

    @_event
    def decision_made(self, decision: Decision) -> None:
        self._expect('decision_made', Screen.PLAYING)
        if decision is Decision.UNDECIDED:
            raise ValueError('decision_made requires smash or pass')
        if self.current_item is None:
            raise ItemNotLoaded('decision_made', self.screen, f'item {self.cursor} is still loading')
        self.pending_decision = decision
        self.screen = Screen.CONFIRMING

    @_event
    def confirm(self, confirmed: bool) -> None:
        self._expect('confirm', Screen.CONFIRMING)
        if not confirmed:
            self.pending_decision = Decision.UNDECIDED
            self.screen = Screen.PLAYING
            return

        if self.feed.needs_prefetch(self.cursor):
            self.feed.request_next_page()

        item = self.current_item
        decision = self.pending_decision
        self.recorder.record(item, decision)
        self.history.append((item.id, decision))
        self.last_decision = decision
        self.pending_decision = Decision.UNDECIDED
        self.screen = Screen.SHOWING_RESULT

    @_event
    def advance(self) -> None:
        if self.screen is Screen.GAME_OVER:
            return
        self._expect('advance', Screen.SHOWING_RESULT)
        self.cursor = min(self.cursor + 1, max(self.total - 1, 0))
        self.last_decision = Decision.UNDECIDED
        self.screen = Screen.GAME_OVER if self.at_end else Screen.PLAYING
        if self.screen is Screen.PLAYING and self.feed.error is None:
            self._fetch_if_missing()

    @_event
    def open_stats(self) -> None:
        self._expect('open_stats', Screen.SHOWING_RESULT, Screen.GAME_OVER)
        self._stats_origin = self.screen
        self.screen = Screen.SHOWING_YOUR_STATS

    @_event
    def close_stats(self) -> None:
        self._expect('close_stats', Screen.SHOWING_YOUR_STATS)
        self.screen, self._stats_origin = self._stats_origin, None

    @_event
    def retry(self) -> None:
        if self.feed.error is not None:
            self.feed.request_page(self.feed.error.page)
            return
        if not self._fetch_if_missing():
            raise InvalidTransition('retry', self.screen, 'nothing to fetch: the current item is loaded or its page is on the way')

    # ---- views ----

    def your_stats(self) -> Dict[str, int]:
        smashes = sum(1 for _, d in self.history if d is Decision.SMASH)
        passes = len(self.history) - smashes
        agreed = 0
        for item_id, decision in self.history:
            tally = self.recorder.tallies.get(item_id)
            if tally is None:
                continue
            majority = tally.smashes - tally.passes
            if majority * int(decision) > 0:
                agreed += 1
        return {
            'decided': len(self.history),
            'smashes': smashes,
            'passes': passes,
            'agreed_with_majority': agreed,
        }

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            item = self.current_item
            return {
                'session_code': self.code,
                'screen': self.screen.value,
                'pending_decision': self.pending_decision.label,
                'last_decision': self.last_decision.label,
                'cursor': self.cursor,
                'total': self.total,
                'page': self.feed.current_page,
                'loaded': len(self.feed.loaded),
                'is_loading': self.is_loading,
                'feed_error': str(self.feed.error) if self.feed.error else None,
                'item': item.to_dict(self.recorder.tally_for(item)) if item else None,
                'your_stats': self.your_stats(),
            }

    # ---- internals ----

    def _expect(self, event: str, *screens: Screen) -> None:
        if self.screen not in screens:
            raise InvalidTransition(event, self.screen)

    def _fetch_if_missing(self) -> bool:
        """Request the page holding the current item when nothing else will."""
        if self.current_item is not None or not self.feed.needs_prefetch(self.cursor):
            return False
        self.feed.request_next_page()
        return True

    def _page_arrived(self, page: Page) -> None:
        self.recorder.seed(page.items)
        if self._started:
            self._notify()

    def _page_failed(self, error: FeedUnavailable) -> None:
        self._notify()

    def _notify(self) -> None:
        if self._on_change is None or not self.alive:
            return
        try:
            self._on_change(self)
        except Exception:
            logger.exception('[session-notify] code=%s listener failed', self.code)
