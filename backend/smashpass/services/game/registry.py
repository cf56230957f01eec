import logging
import random
import string
import threading
import time
from typing import Callable, Dict, List, Optional, Set

from .session import GameSession


logger = logging.getLogger(__name__)


def generate_session_code(taken, length=4):
    """Generate a unique, short session code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if code not in taken:
            return code


class SessionRegistry:
    """Live game sessions by code. Sessions are in-memory only."""

    def __init__(self, executor, page_size: int = 10, margin: int = 2,
                 on_change: Optional[Callable[[GameSession], None]] = None):
        self.executor = executor
        self.page_size = page_size
        self.margin = margin
        self.on_change = on_change
        self._sessions: Dict[str, GameSession] = {}
        self._reserved: Set[str] = set()
        self._lock = threading.Lock()

    def create(self, source, sink_factory, page_size: Optional[int] = None) -> GameSession:
        """Create, fetch page 1 and register a session.

        `sink_factory(code)` builds the decision sink so votes can be keyed
        by the session code. Page fetch errors propagate to the caller and
        nothing is registered.
        """
        size = page_size or self.page_size
        with self._lock:
            code = generate_session_code(self._sessions.keys() | self._reserved)
            self._reserved.add(code)
        try:
            session = GameSession(
                code, source.fetch_page, sink_factory(code), self.executor,
                page_size=size, margin=self.margin, on_change=self.on_change,
            )
            session.start(source.fetch_page(1, size))
            with self._lock:
                self._sessions[code] = session
        finally:
            with self._lock:
                self._reserved.discard(code)
        logger.info('[registry-create] code=%s live=%s', code, len(self._sessions))
        return session

    def get(self, code: str) -> Optional[GameSession]:
        if not code:
            return None
        session = self._sessions.get(code.upper())
        if session is not None:
            session.touch()
        return session

    def idle_codes(self, max_idle: float, now: Optional[float] = None) -> List[str]:
        """Codes of sessions with no event or read for `max_idle` seconds."""
        now = time.time() if now is None else now
        with self._lock:
            live = list(self._sessions.items())
        return [code for code, session in live if now - session.last_active >= max_idle]

    def end(self, code: str) -> Optional[GameSession]:
        with self._lock:
            session = self._sessions.pop(code.upper(), None)
        if session is not None:
            session.end()
        return session

    def __contains__(self, code: str) -> bool:
        return bool(code) and code.upper() in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
