# qvote_server/data.py
import json
import logging
import os
import threading
from dataclasses import replace
from datetime import timedelta

from Crypto.Hash import SHA256

from qvote_common.errors import VoterNotFound
from qvote_common.models import Event, Option, VoterRecord, utc_now

logger = logging.getLogger("qvote_server.data")

UNSET = object()


def voter_hash(event_id, voter_id):
    return SHA256.new(f"{event_id}:{voter_id}".encode("utf-8")).hexdigest()


def demo_event(now=None):
    now = now or utc_now()
    return Event(
        id="EV1",
        title="Participatory budget",
        description="Split your credits between the neighbourhood proposals.",
        credits_per_voter=100,
        start_date=now - timedelta(hours=1),
        end_date=now + timedelta(days=7),
        options=[
            Option("Bike lanes", "Protected lanes on the main avenue.", "https://example.org/bike"),
            Option("Public library", "Extend opening hours on weekends."),
            Option("Park renovation", "", "https://example.org/park"),
            Option("Street lighting"),
        ],
    )


def demo_voters(event):
    return [
        VoterRecord(id=voter_id, event_id=event.id, hash=voter_hash(event.id, voter_id),
                    votes=[0] * len(event.options))
        for voter_id in ("ID1001", "ID1002", "ID1003", "ID1004", "ID1005")
    ]


class VoterStore:
    """
    Key-value store of events and voter records.

    Records are handed out as copies, so callers never share mutable state
    with the store. With a path, the whole store is written back to JSON
    after every update.
    """

    def __init__(self, events=(), voters=(), path=None):
        self.lock = threading.Lock()
        self.pending = set()
        self.path = path
        self.events = {event.id: event for event in events}
        self.voters = {voter.id: voter for voter in voters}

    @classmethod
    def load(cls, path):
        if not os.path.exists(path):
            return None
        with open(path, "r") as f:
            data = json.load(f)
        return cls(
            events=[Event.from_dict(e) for e in data.get("events", [])],
            voters=[VoterRecord.from_dict(v) for v in data.get("voters", [])],
            path=path,
        )

    @classmethod
    def demo(cls, path=None):
        event = demo_event()
        return cls(events=[event], voters=demo_voters(event), path=path)

    def save(self):
        if not self.path:
            return
        with open(self.path, "w") as f:
            json.dump({
                "events": [e.to_dict() for e in self.events.values()],
                "voters": [v.to_dict() for v in self.voters.values()],
            }, f, indent=2)

    def get_event(self, event_id):
        with self.lock:
            return self.events.get(event_id)

    def find_voter(self, voter_id, event_id=None):
        with self.lock:
            voter = self.voters.get(voter_id)
            if voter is None or (event_id is not None and voter.event_id != event_id):
                raise VoterNotFound(voter_id)
            return replace(voter, votes=list(voter.votes))

    def find_voter_by_hash(self, hash_):
        with self.lock:
            for voter in self.voters.values():
                if voter.hash == hash_:
                    return replace(voter, votes=list(voter.votes))
        raise VoterNotFound(hash_)

    def voters_for(self, event_id):
        with self.lock:
            return [replace(v, votes=list(v.votes)) for v in self.voters.values() if v.event_id == event_id]

    def claim_submission(self, voter_id):
        """
        Reserve the voter's single ballot write.

        Returns False when the voter already has votes or a signature, or
        another submission holds the claim. A successful claim must be ended
        with release_claim, whether or not the votes were written.
        """
        with self.lock:
            voter = self.voters.get(voter_id)
            if voter is None:
                raise VoterNotFound(voter_id)
            if voter_id in self.pending or voter.signature_exists or any(voter.votes):
                return False
            self.pending.add(voter_id)
            return True

    def release_claim(self, voter_id):
        with self.lock:
            self.pending.discard(voter_id)

    def update_voter(self, voter_id, votes=UNSET, signature=UNSET, public_key=UNSET, mudamos_url=UNSET):
        with self.lock:
            voter = self.voters.get(voter_id)
            if voter is None:
                raise VoterNotFound(voter_id)
            changes = {}
            if votes is not UNSET:
                if len(votes) != len(voter.votes):
                    raise ValueError(f"voter {voter_id} needs {len(voter.votes)} votes, got {len(votes)}")
                changes["votes"] = list(votes)
            if signature is not UNSET:
                changes["signature"] = signature
            if public_key is not UNSET:
                changes["public_key"] = public_key
            if mudamos_url is not UNSET:
                changes["mudamos_url"] = mudamos_url
            self.voters[voter_id] = replace(voter, **changes)
            self.save()
            logger.debug(f"Voter {voter_id} updated: {sorted(changes)}")
            return replace(self.voters[voter_id], votes=list(self.voters[voter_id].votes))
