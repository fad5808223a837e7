from datetime import datetime, timedelta, timezone

import pytest

from qvote_common.models import Event, Option, VoterRecord
from qvote_server.auth import SharedSecretVerifier
from qvote_server.bulletin import create_app
from qvote_server.data import VoterStore, voter_hash
from qvote_server.mudamos import SigningProviderError

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
SECRET = "callback-secret"


def make_event(credits=100, options=2, start=None, end=None):
    return Event(
        id="EV1",
        title="Budget",
        description="Split credits",
        credits_per_voter=credits,
        start_date=start or NOW - timedelta(days=1),
        end_date=end or NOW + timedelta(days=1),
        options=[Option(f"Option {i}", f"About option {i}") for i in range(options)],
    )


def make_voter(voter_id="V1", votes=None, options=2, **kwargs):
    return VoterRecord(
        id=voter_id,
        event_id="EV1",
        hash=voter_hash("EV1", voter_id),
        votes=list(votes) if votes is not None else [0] * options,
        **kwargs,
    )


class FakeSigner:
    def __init__(self, url="https://mudamos.example/sign/abc", fail=False):
        self.url = url
        self.fail = fail
        self.calls = []

    def request_signing_url(self, voter, votes):
        self.calls.append((voter.id, list(votes)))
        if self.fail:
            raise SigningProviderError("down")
        return self.url


@pytest.fixture
def event():
    # Open for a year around the real clock, so endpoints see it as OPEN
    now = datetime.now(timezone.utc)
    return make_event(start=now - timedelta(days=180), end=now + timedelta(days=180))


@pytest.fixture
def store(event):
    return VoterStore(events=[event], voters=[make_voter("V1"), make_voter("V2")])


@pytest.fixture
def signer():
    return FakeSigner()


@pytest.fixture
def client(store, signer):
    app, _ = create_app(store, signer, SharedSecretVerifier(SECRET), async_mode="threading")
    app.config["TESTING"] = True
    return app.test_client()
