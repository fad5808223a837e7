import threading
from datetime import datetime, timedelta, timezone

from qvote_server.auth import to_base64
from qvote_server.bulletin import create_app
from qvote_server.auth import SharedSecretVerifier
from qvote_server.data import VoterStore, voter_hash
from qvote_server.handler import handle_vote
from conftest import SECRET, FakeSigner, make_event, make_voter

AUTH = {"Authorization": f"Bearer {to_base64(SECRET)}"}


def callback_payload(voter_id="V1"):
    return {
        "message": f"{voter_hash('EV1', voter_id)};EV1;digest",
        "signature": "signed-bytes",
        "publicKey": "public-key",
    }


def test_find(client):
    response = client.get("/api/events/find?id=V1")
    assert response.status_code == 200
    data = response.get_json()
    assert data["event_id"] == "EV1"
    assert data["event_data"]["credits_per_voter"] == 100
    assert [item["votes"] for item in data["vote_data"]] == [0, 0]
    assert data["signature_exists"] is False
    assert data["mudamos_url"] is None
    assert "hash" not in data


def test_find_unknown(client):
    assert client.get("/api/events/find?id=nobody").status_code == 404


def test_vote_stores_votes_and_url(client, store, signer):
    response = client.post("/api/events/vote", json={"id": "V1", "votes": [5, -7], "name": ""})
    assert response.status_code == 200
    assert response.get_json() == {"url": signer.url}
    voter = store.find_voter("V1")
    assert voter.votes == [5, -7]
    assert voter.mudamos_url == signer.url
    assert signer.calls == [("V1", [5, -7])]


def test_vote_over_budget_is_refused(client, store):
    response = client.post("/api/events/vote", json={"id": "V1", "votes": [8, 7]})
    assert response.status_code == 400
    assert store.find_voter("V1").votes == [0, 0]


def test_vote_wrong_length_or_type(client):
    assert client.post("/api/events/vote", json={"id": "V1", "votes": [1]}).status_code == 400
    assert client.post("/api/events/vote", json={"id": "V1", "votes": ["1", 0]}).status_code == 400
    assert client.post("/api/events/vote", data="not json").status_code == 400


def test_vote_unknown_voter(client):
    assert client.post("/api/events/vote", json={"id": "nobody", "votes": [1, 0]}).status_code == 404


def test_vote_twice_is_refused(client, signer):
    assert client.post("/api/events/vote", json={"id": "V1", "votes": [1, 0]}).status_code == 200
    assert client.post("/api/events/vote", json={"id": "V1", "votes": [0, 1]}).status_code == 409
    assert len(signer.calls) == 1


def test_vote_provider_down_persists_nothing(store):
    app, _ = create_app(store, FakeSigner(fail=True), SharedSecretVerifier(SECRET), async_mode="threading")
    response = app.test_client().post("/api/events/vote", json={"id": "V1", "votes": [1, 0]})
    assert response.status_code == 502
    voter = store.find_voter("V1")
    assert voter.votes == [0, 0]
    assert voter.mudamos_url is None


def test_vote_outside_voting_window():
    now = datetime.now(timezone.utc)
    event = make_event(start=now + timedelta(days=1), end=now + timedelta(days=2))
    store = VoterStore(events=[event], voters=[make_voter()])
    app, _ = create_app(store, FakeSigner(), SharedSecretVerifier(SECRET), async_mode="threading")
    response = app.test_client().post("/api/events/vote", json={"id": "V1", "votes": [1, 0]})
    assert response.status_code == 403


def test_callback_records_signature(client, store):
    response = client.post("/api/events/callback", json=callback_payload(), headers=AUTH)
    assert response.status_code == 200
    assert response.get_data(as_text=True) == "Successful update"
    voter = store.find_voter("V1")
    assert voter.signature == "signed-bytes"
    assert voter.public_key == "public-key"
    assert client.get("/api/events/find?id=V1").get_json()["signature_exists"] is True


def test_callback_is_idempotent(client, store):
    for _ in range(2):
        assert client.post("/api/events/callback", json=callback_payload(), headers=AUTH).status_code == 200
    assert store.find_voter("V1").signature == "signed-bytes"


def test_scenario_c_unknown_hash(client, store):
    before = [v.to_dict() for v in store.voters_for("EV1")]
    payload = callback_payload()
    payload["message"] = "not-a-voter-hash;EV1;digest"
    response = client.post("/api/events/callback", json=payload, headers=AUTH)
    assert response.status_code == 400
    assert response.get_data(as_text=True) == "Invalid voter id"
    assert [v.to_dict() for v in store.voters_for("EV1")] == before


def test_scenario_d_token_length_mismatch(client, store):
    response = client.post("/api/events/callback", json=callback_payload(),
                           headers={"Authorization": "Bearer c2hvcnQ="})
    assert response.status_code == 401
    assert store.find_voter("V1").signature is None


def test_callback_wrong_secret_same_length(client, store):
    token = to_base64(SECRET[::-1])
    response = client.post("/api/events/callback", json=callback_payload(),
                           headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert store.find_voter("V1").signature is None


def test_callback_missing_auth(client):
    assert client.post("/api/events/callback", json=callback_payload()).status_code == 401


def test_callback_malformed_payload(client):
    assert client.post("/api/events/callback", json={"signature": "x"}, headers=AUTH).status_code == 400


def test_details_counts_only_signed_votes(client, store):
    client.post("/api/events/vote", json={"id": "V1", "votes": [3, -2]})
    client.post("/api/events/vote", json={"id": "V2", "votes": [4, 0]})
    client.post("/api/events/callback", json=callback_payload("V1"), headers=AUTH)

    data = client.get("/api/events/details?id=EV1").get_json()
    assert data["voters"] == 2
    assert data["voted"] == 2
    assert data["signed"] == 1
    assert data["results"] == [
        {"title": "Option 0", "votes": 3},
        {"title": "Option 1", "votes": -2},
    ]
    assert data["state"] == "OPEN"
    assert data["time_left"] > 0


def test_details_unknown_event(client):
    assert client.get("/api/events/details?id=nope").status_code == 404


def test_dashboard_page(client):
    response = client.get("/event?id=EV1")
    assert response.status_code == 200
    assert b"Quadratic Vote Dashboard" in response.data


class BlockingSigner:
    """Holds the first signing request open until released"""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.calls = []

    def request_signing_url(self, voter, votes):
        self.calls.append(list(votes))
        self.entered.set()
        self.release.wait(5)
        return "https://mudamos.example/sign/slow"


def test_overlapping_votes_only_one_accepted(store):
    signer = BlockingSigner()
    results = []
    first = threading.Thread(target=lambda: results.append(
        handle_vote(store, signer, {"id": "V1", "votes": [5, 0]})))
    first.start()
    assert signer.entered.wait(5)

    status, _ = handle_vote(store, signer, {"id": "V1", "votes": [0, 5]})
    signer.release.set()
    first.join(5)

    assert status == 409
    assert results[0][0] == 200
    assert signer.calls == [[5, 0]]
    assert store.find_voter("V1").votes == [5, 0]


def test_vote_claim_released_after_provider_failure(store):
    assert handle_vote(store, FakeSigner(fail=True), {"id": "V1", "votes": [1, 0]})[0] == 502
    assert handle_vote(store, FakeSigner(), {"id": "V1", "votes": [1, 0]})[0] == 200
    assert store.pending == set()
