import pytest

from smashpass.services.game import (
    Decision,
    DecisionRecorder,
    InlineExecutor,
    Item,
    Tally,
    apply_vote,
    seed_tallies,
)

from conftest import FakeSink


def test_apply_vote_is_pure():
    store = {1: Tally(smashes=2, passes=1, total_votes=3)}
    updated = apply_vote(store, 1, Decision.SMASH)
    assert store[1] == Tally(smashes=2, passes=1, total_votes=3)
    assert updated[1] == Tally(smashes=3, passes=1, total_votes=4)
    updated = apply_vote(updated, 1, Decision.PASS)
    assert updated[1] == Tally(smashes=3, passes=2, total_votes=5)
    with pytest.raises(ValueError):
        apply_vote(store, 1, Decision.UNDECIDED)


def test_seed_tallies_keeps_existing_entries():
    store = {1: Tally(smashes=9, passes=0, total_votes=9)}
    items = [Item(id=1, tally=Tally(1, 1, 2)), Item(id=2, tally=Tally(0, 3, 3))]
    seeded = seed_tallies(store, items)
    assert seeded[1] == Tally(smashes=9, passes=0, total_votes=9)
    assert seeded[2] == Tally(0, 3, 3)


def test_record_updates_local_tally_and_calls_sink():
    sink = FakeSink()
    recorder = DecisionRecorder(sink, InlineExecutor())
    item = Item(id=7, tally=Tally(smashes=1, passes=1, total_votes=2))
    recorder.seed([item])
    recorder.record(item, Decision.SMASH)
    tally = recorder.tally_for(item)
    assert tally == Tally(smashes=2, passes=1, total_votes=3)
    assert tally.smashes + tally.passes == tally.total_votes
    assert sink.calls == [(7, Decision.SMASH)]
    # the loaded item snapshot is untouched
    assert item.tally == Tally(smashes=1, passes=1, total_votes=2)


def test_record_failure_keeps_optimistic_tally():
    recorder = DecisionRecorder(FakeSink(fail=True), InlineExecutor())
    item = Item(id=3)
    future = recorder.record(item, Decision.PASS)
    assert future.exception() is not None
    assert recorder.tally_for(item) == Tally(smashes=0, passes=1, total_votes=1)


def test_tally_applied_before_remote_call_resolves(manual_executor):
    sink = FakeSink()
    recorder = DecisionRecorder(sink, manual_executor)
    item = Item(id=4)
    recorder.record(item, Decision.SMASH)
    assert sink.calls == []
    assert recorder.tally_for(item).total_votes == 1
    manual_executor.run_all()
    assert sink.calls == [(4, Decision.SMASH)]


def test_record_rejects_undecided():
    recorder = DecisionRecorder(FakeSink(), InlineExecutor())
    with pytest.raises(ValueError):
        recorder.record(Item(id=1), Decision.UNDECIDED)


@pytest.mark.parametrize('raw,expected', [
    ('smash', Decision.SMASH),
    ('PASS', Decision.PASS),
    (1, Decision.SMASH),
    (-1, Decision.PASS),
])
def test_decision_parse(raw, expected):
    assert Decision.parse(raw) is expected


@pytest.mark.parametrize('raw', [0, None, 'maybe', True, 2])
def test_decision_parse_rejects(raw):
    with pytest.raises(ValueError):
        Decision.parse(raw)
