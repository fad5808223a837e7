import json

import pytest

from qvote_common.errors import VoterNotFound
from qvote_server.data import VoterStore, voter_hash
from conftest import make_event, make_voter


@pytest.fixture
def store(tmp_path):
    return VoterStore(events=[make_event()], voters=[make_voter("V1"), make_voter("V2")],
                      path=str(tmp_path / "store.json"))


def test_find_returns_copies(store):
    voter = store.find_voter("V1")
    voter.votes[0] = 9
    assert store.find_voter("V1").votes == [0, 0]


def test_find_checks_event(store):
    assert store.find_voter("V1", "EV1").id == "V1"
    with pytest.raises(VoterNotFound):
        store.find_voter("V1", "OTHER")
    with pytest.raises(VoterNotFound):
        store.find_voter("V9")


def test_find_by_hash(store):
    assert store.find_voter_by_hash(voter_hash("EV1", "V2")).id == "V2"
    with pytest.raises(VoterNotFound):
        store.find_voter_by_hash("missing")


def test_update_keeps_vote_length(store):
    with pytest.raises(ValueError):
        store.update_voter("V1", votes=[1])
    with pytest.raises(VoterNotFound):
        store.update_voter("V9", signature="x")


def test_update_only_touches_given_fields(store):
    store.update_voter("V1", votes=[2, 1], mudamos_url="https://u")
    store.update_voter("V1", signature="sig", public_key="pk")
    voter = store.find_voter("V1")
    assert voter.votes == [2, 1]
    assert voter.mudamos_url == "https://u"
    assert voter.signature_exists


def test_persists_and_reloads(store, tmp_path):
    store.update_voter("V2", votes=[-1, 3], mudamos_url="https://u")
    path = tmp_path / "store.json"
    data = json.loads(path.read_text())
    assert {v["id"] for v in data["voters"]} == {"V1", "V2"}

    reloaded = VoterStore.load(str(path))
    assert reloaded.find_voter("V2").votes == [-1, 3]
    assert reloaded.get_event("EV1").credits_per_voter == 100
    assert reloaded.get_event("EV1").start_date == store.get_event("EV1").start_date


def test_load_missing_file(tmp_path):
    assert VoterStore.load(str(tmp_path / "absent.json")) is None


def test_demo_store():
    store = VoterStore.demo()
    (event,) = store.events.values()
    assert event.phase() == "OPEN"
    for voter in store.voters_for(event.id):
        assert voter.votes == [0] * len(event.options)
        assert voter.hash == voter_hash(event.id, voter.id)


def test_claim_submission_is_exclusive(store):
    assert store.claim_submission("V1") is True
    assert store.claim_submission("V1") is False
    assert store.claim_submission("V2") is True
    store.release_claim("V1")
    assert store.claim_submission("V1") is True


def test_claim_refused_once_voted_or_signed(store):
    store.update_voter("V1", votes=[2, 0])
    store.update_voter("V2", signature="sig")
    assert store.claim_submission("V1") is False
    assert store.claim_submission("V2") is False
    with pytest.raises(VoterNotFound):
        store.claim_submission("nobody")
