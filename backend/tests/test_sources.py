import pytest
import requests

from smashpass.services.game import Decision
from smashpass.services.game.sources import (
    HttpDecisionSink,
    HttpFeedSource,
    LocalDecisionSink,
    LocalFeedSource,
)


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload or {}
        self.status_code = status_code

    def json(self):
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} error')


class FakeHttp:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append(('GET', url, kwargs))
        return self.response

    def patch(self, url, **kwargs):
        self.calls.append(('PATCH', url, kwargs))
        return self.response


def test_http_feed_source_parses_page():
    http = FakeHttp(FakeResponse({
        'posts': [{'id': 5, 'name': 'Ada', 'smashes': 3, 'passes': 1, 'total_votes': 4}],
        'page': 2,
        'total': 11,
    }))
    source = HttpFeedSource('http://store.local/', session=http)
    page = source.fetch_page(2, 10)
    assert page.page == 2
    assert page.total == 11
    assert page.items[0].id == 5
    assert page.items[0].tally.total_votes == 4
    method, url, kwargs = http.calls[0]
    assert url == 'http://store.local/api/posts'
    assert kwargs['params'] == {'page': 2, 'page_size': 10}


def test_http_feed_source_raises_on_error_status():
    source = HttpFeedSource('http://store.local', session=FakeHttp(FakeResponse(status_code=503)))
    with pytest.raises(requests.HTTPError):
        source.fetch_page(1, 10)


def test_http_sink_uses_outcome_specific_routes():
    http = FakeHttp(FakeResponse({}))
    sink = HttpDecisionSink('http://store.local', voter_id='ABCD', session=http)
    sink.apply_decision(7, Decision.SMASH)
    sink.apply_decision(8, Decision.PASS)
    assert [c[1] for c in http.calls] == [
        'http://store.local/api/posts/7/smash',
        'http://store.local/api/posts/8/pass',
    ]
    assert http.calls[0][2]['json'] == {'voter_id': 'ABCD'}
    with pytest.raises(ValueError):
        sink.apply_decision(9, Decision.UNDECIDED)


def test_local_source_and_sink(flask_app, seeded):
    source = LocalFeedSource(flask_app)
    page = source.fetch_page(3, 10)
    assert page.total == 25
    assert len(page.items) == 5

    sink = LocalDecisionSink(flask_app, voter_id='WXYZ')
    post_id = page.items[0].id
    sink.apply_decision(post_id, Decision.PASS)
    sink.apply_decision(post_id, Decision.PASS)
    again = source.fetch_page(3, 10).items[0]
    assert again.tally.passes == 1
    assert again.tally.total_votes == 1
