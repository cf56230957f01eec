import logging
import threading
from concurrent.futures import Future
from typing import Any, Dict, Iterable

from .types import Decision, Item, Tally, apply_vote, seed_tallies


logger = logging.getLogger(__name__)


class DecisionRecorder:
    """Persist one decision per item and keep the local tally in step.

    The local tally is updated before the remote call is even submitted and
    is never rolled back; the remote store stays the source of truth for
    later page loads.
    """

    def __init__(self, sink, executor, lock=None):
        self._sink = sink
        self._executor = executor
        self._lock = lock if lock is not None else threading.RLock()
        self.tallies: Dict[Any, Tally] = {}

    def seed(self, items: Iterable[Item]) -> None:
        with self._lock:
            self.tallies = seed_tallies(self.tallies, items)

    def tally_for(self, item: Item) -> Tally:
        return self.tallies.get(item.id, item.tally)

    def record(self, item: Item, decision: Decision) -> Future:
        if decision is Decision.UNDECIDED:
            raise ValueError('Cannot record an undecided vote')
        with self._lock:
            store = self.tallies if item.id in self.tallies else seed_tallies(self.tallies, [item])
            self.tallies = apply_vote(store, item.id, decision)
        logger.info('[vote] item=%s decision=%s', item.id, decision.label)
        future = self._executor.submit(self._sink.apply_decision, item.id, decision)
        future.add_done_callback(lambda f, item_id=item.id: self._on_done(item_id, decision, f))
        return future

    def _on_done(self, item_id: Any, decision: Decision, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            # Best effort: the optimistic tally stays as applied.
            logger.warning('[vote-error] item=%s decision=%s error=%r', item_id, decision.label, exc)
