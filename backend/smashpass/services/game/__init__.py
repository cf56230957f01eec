"""Game session domain: the paginated item feed, vote recording and the
screen state machine.

Nothing in here knows about HTTP or Socket.IO; routes and socket handlers
build sessions through the registry and forward events to them.
"""

from .types import Decision, Item, Page, Screen, Tally, apply_vote, seed_tallies
from .feed import FeedUnavailable, InlineExecutor, ItemFeed
from .recorder import DecisionRecorder
from .session import GameSession, InvalidTransition, ItemNotLoaded
from .registry import SessionRegistry
