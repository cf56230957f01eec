from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


class Decision(IntEnum):
    UNDECIDED = 0
    PASS = -1
    SMASH = 1

    @classmethod
    def parse(cls, value: Any) -> 'Decision':
        """Accept 'smash'/'pass' or +1/-1. Undecided is never a valid input."""
        if isinstance(value, str):
            key = value.strip().lower()
            if key == 'smash':
                return cls.SMASH
            if key == 'pass':
                return cls.PASS
            raise ValueError(f'Unknown decision: {value!r}')
        if isinstance(value, bool) or value not in (-1, 1):
            raise ValueError(f'Unknown decision: {value!r}')
        return cls(value)

    @property
    def label(self) -> Optional[str]:
        if self is Decision.SMASH:
            return 'smash'
        if self is Decision.PASS:
            return 'pass'
        return None


class Screen(str, Enum):
    PLAYING = 'playing'
    CONFIRMING = 'confirming'
    SHOWING_RESULT = 'showing_result'
    SHOWING_YOUR_STATS = 'showing_your_stats'
    GAME_OVER = 'game_over'


@dataclass(frozen=True)
class Tally:
    smashes: int = 0
    passes: int = 0
    total_votes: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'smashes': self.smashes,
            'passes': self.passes,
            'total_votes': self.total_votes,
        }


@dataclass(frozen=True)
class Item:
    """A profile card as loaded from the feed. Never mutated after load."""
    id: Any
    name: str = ''
    image_url: Optional[str] = None
    bio: Optional[str] = None
    tally: Tally = field(default_factory=Tally)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Item':
        return cls(
            id=data['id'],
            name=data.get('name') or '',
            image_url=data.get('image_url'),
            bio=data.get('bio'),
            tally=Tally(
                smashes=int(data.get('smashes') or 0),
                passes=int(data.get('passes') or 0),
                total_votes=int(data.get('total_votes') or 0),
            ),
        )

    def to_dict(self, tally: Optional[Tally] = None) -> Dict[str, Any]:
        payload = {
            'id': self.id,
            'name': self.name,
            'image_url': self.image_url,
            'bio': self.bio,
        }
        payload.update((tally or self.tally).to_dict())
        return payload


@dataclass(frozen=True)
class Page:
    items: Tuple[Item, ...]
    page: int
    total: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Page':
        return cls(
            items=tuple(Item.from_dict(p) for p in data.get('posts') or []),
            page=int(data['page']),
            total=int(data['total']),
        )


TallyStore = Mapping[Any, Tally]


def seed_tallies(store: TallyStore, items: Iterable[Item]) -> Dict[Any, Tally]:
    """Add server tallies for newly loaded items; existing entries win."""
    updated = dict(store)
    for item in items:
        updated.setdefault(item.id, item.tally)
    return updated


def apply_vote(store: TallyStore, item_id: Any, decision: Decision) -> Dict[Any, Tally]:
    """Return a new store with one vote for `decision` applied to `item_id`."""
    if decision is Decision.UNDECIDED:
        raise ValueError('Cannot apply an undecided vote')
    current = store.get(item_id, Tally())
    if decision is Decision.SMASH:
        tally = replace(current, smashes=current.smashes + 1, total_votes=current.total_votes + 1)
    else:
        tally = replace(current, passes=current.passes + 1, total_votes=current.total_votes + 1)
    updated = dict(store)
    updated[item_id] = tally
    return updated
