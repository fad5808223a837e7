import logging
import threading
from collections import namedtuple
from dataclasses import dataclass
from typing import Tuple

from qvote_common.errors import VoteRejected, InvalidTransition
from qvote_common.ledger import can_adjust, remaining, total_spent

logger = logging.getLogger("qvote_client.ballot")

EDITING = "EDITING"
SUBMITTING = "SUBMITTING"
AWAITING_SIGNATURE = "AWAITING_SIGNATURE"
DONE = "DONE"

# Allowed transitions, keyed by target state
TRANSITIONS = {
    SUBMITTING: {EDITING},
    EDITING: {SUBMITTING},
    AWAITING_SIGNATURE: {EDITING, SUBMITTING},
    DONE: {EDITING, SUBMITTING, AWAITING_SIGNATURE},
}


@dataclass(frozen=True)
class Ballot:
    """Snapshot of an in-progress allocation"""
    allocation: Tuple[int, ...]
    credits_remaining: int
    expanded: Tuple[bool, ...]


VoteResult = namedtuple("VoteResult", ["ballot", "rejected"])


class BallotMachine:
    """
    Owns a voter's unsubmitted allocation for one session.

    Every change goes through the ledger admission check and is applied under
    the machine lock, so credits_remaining always equals the budget minus the
    quadratic cost of the whole allocation and never drops below zero.
    """

    def __init__(self, credits_per_voter, allocation, read_only=False):
        allocation = tuple(int(v) for v in allocation)
        if remaining(credits_per_voter, allocation) < 0:
            raise ValueError("allocation exceeds the credit budget")
        self.credits_per_voter = credits_per_voter
        self.state = EDITING
        self.read_only = read_only
        self.lock = threading.Lock()
        self._allocation = allocation
        self._credits_remaining = remaining(credits_per_voter, allocation)
        self._expanded = tuple(False for _ in allocation)

    @classmethod
    def initialize(cls, voter_record, event):
        if len(voter_record.votes) != len(event.options):
            raise ValueError(
                f"voter {voter_record.id} has {len(voter_record.votes)} votes "
                f"for {len(event.options)} options"
            )
        # tuple() copies: the record keeps its own list
        machine = cls(
            event.credits_per_voter,
            tuple(voter_record.votes),
            read_only=total_spent(voter_record.votes) > 0,
        )
        if machine.read_only:
            logger.info(f"Voter {voter_record.id} already voted, ballot is read-only.")
        return machine

    def render(self):
        with self.lock:
            return self._snapshot()

    def _snapshot(self):
        return Ballot(self._allocation, self._credits_remaining, self._expanded)

    @property
    def editable(self):
        return self.state == EDITING and not self.read_only

    def can_vote(self, index, increment):
        """Whether the +/- control for an option should be enabled"""
        with self.lock:
            self._check_index(index)
            if not self.editable:
                return False
            return can_adjust(self._allocation[index], 1 if increment else -1, self._credits_remaining)

    def apply_vote(self, index, increment):
        with self.lock:
            self._check_index(index)
            delta = 1 if increment else -1
            current = self._allocation[index]

            if self.state != EDITING:
                return self._reject(f"Ballot is not editable in {self.state} state.", index)
            if self.read_only:
                return self._reject("Ballot was already submitted.", index)
            if not can_adjust(current, delta, self._credits_remaining):
                return self._reject("Not enough credits for this vote.", index)

            allocation = list(self._allocation)
            allocation[index] = current + delta
            self._allocation = tuple(allocation)
            self._credits_remaining = remaining(self.credits_per_voter, self._allocation)
            logger.debug(f"Option {index}: {current} -> {current + delta}, {self._credits_remaining} credits left.")
            return VoteResult(self._snapshot(), None)

    def _reject(self, reason, index):
        logger.info(f"Vote on option {index} rejected: {reason}")
        return VoteResult(self._snapshot(), VoteRejected(reason, index))

    def _check_index(self, index):
        if not isinstance(index, int) or not 0 <= index < len(self._allocation):
            raise IndexError(f"option index {index!r} out of range")

    def toggle_description(self, index):
        with self.lock:
            self._check_index(index)
            expanded = list(self._expanded)
            expanded[index] = not expanded[index]
            self._expanded = tuple(expanded)
            return self._snapshot()

    def unlock(self):
        """Reopen an already-voted ballot for editing"""
        with self.lock:
            self.read_only = False

    def _move(self, target):
        with self.lock:
            if self.state not in TRANSITIONS[target]:
                raise InvalidTransition(self.state, target)
            logger.debug(f"Ballot {self.state} -> {target}")
            self.state = target
            return self._snapshot()

    def begin_submit(self):
        return self._move(SUBMITTING)

    def submission_failed(self):
        if self.state != SUBMITTING:
            raise InvalidTransition(self.state, EDITING)
        return self._move(EDITING)

    def await_signature(self):
        return self._move(AWAITING_SIGNATURE)

    def finish(self):
        return self._move(DONE)
