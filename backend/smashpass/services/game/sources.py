"""Feed sources and decision sinks for a game session.

Local implementations talk to this app's post store directly; HTTP
implementations talk to a remote store through its /api/posts routes.
"""

import requests
from flask import has_app_context

from .types import Decision, Page


class DecisionSink:
    """Routes a decision to the matching outcome-specific call."""

    def apply_decision(self, item_id, decision: Decision) -> None:
        if decision is Decision.SMASH:
            self.smash(item_id)
        elif decision is Decision.PASS:
            self.pass_(item_id)
        else:
            raise ValueError('Cannot apply an undecided vote')

    def smash(self, item_id) -> None:
        raise NotImplementedError

    def pass_(self, item_id) -> None:
        raise NotImplementedError


class LocalFeedSource:
    def __init__(self, app):
        self.app = app

    def fetch_page(self, page: int, page_size: int) -> Page:
        # Worker threads have no app context of their own.
        if has_app_context():
            return self._fetch(page, page_size)
        with self.app.app_context():
            return self._fetch(page, page_size)

    def _fetch(self, page: int, page_size: int) -> Page:
        from smashpass.services.posts import get_page
        return Page.from_dict(get_page(page, page_size))


class LocalDecisionSink(DecisionSink):
    def __init__(self, app, voter_id: str):
        self.app = app
        self.voter_id = voter_id

    def smash(self, item_id) -> None:
        self._cast(item_id, Decision.SMASH)

    def pass_(self, item_id) -> None:
        self._cast(item_id, Decision.PASS)

    def _cast(self, item_id, decision: Decision) -> None:
        from smashpass.services.posts import cast_vote
        if has_app_context():
            cast_vote(item_id, decision, self.voter_id)
            return
        with self.app.app_context():
            cast_vote(item_id, decision, self.voter_id)


class HttpFeedSource:
    def __init__(self, base_url: str, timeout: float = 5.0, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_page(self, page: int, page_size: int) -> Page:
        res = self.session.get(
            f'{self.base_url}/api/posts',
            params={'page': page, 'page_size': page_size},
            timeout=self.timeout,
        )
        res.raise_for_status()
        return Page.from_dict(res.json())


class HttpDecisionSink(DecisionSink):
    def __init__(self, base_url: str, voter_id: str, timeout: float = 5.0, session=None):
        self.base_url = base_url.rstrip('/')
        self.voter_id = voter_id
        self.timeout = timeout
        self.session = session or requests.Session()

    def smash(self, item_id) -> None:
        self._patch(item_id, 'smash')

    def pass_(self, item_id) -> None:
        self._patch(item_id, 'pass')

    def _patch(self, item_id, outcome: str) -> None:
        res = self.session.patch(
            f'{self.base_url}/api/posts/{item_id}/{outcome}',
            json={'voter_id': self.voter_id},
            timeout=self.timeout,
        )
        res.raise_for_status()
