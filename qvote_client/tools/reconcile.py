"""
Turn a persisted voter record into the state a voting session starts from.

Reconciliation only reads the record, so running it again on a stale or a
freshly signed record is always safe and gives the same answer for the same
input.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from qvote_common.ledger import remaining, total_spent
from qvote_common.models import ENDED, NOT_STARTED

EDITING_VIEW = "EDITING"
SIGNATURE_RETRY_VIEW = "SIGNATURE_RETRY"
WAITING_VIEW = "WAITING"
SIGNING_VIEW = "SIGNING"
HISTORIC_VIEW = "HISTORIC"
EVENT_ENDED_VIEW = "EVENT_ENDED"


@dataclass(frozen=True)
class InitialUiState:
    already_voted: bool
    needs_signature: bool
    phase: str
    view: str
    allocation: Tuple[int, ...]
    credits_remaining: int
    signing_url: Optional[str] = None


def select_view(already_voted, needs_signature, phase, signing_url_present):
    if phase == ENDED:
        return EVENT_ENDED_VIEW
    if needs_signature and not signing_url_present:
        return SIGNATURE_RETRY_VIEW
    if phase == NOT_STARTED:
        return WAITING_VIEW
    if signing_url_present:
        return SIGNING_VIEW
    if already_voted:
        return HISTORIC_VIEW
    return EDITING_VIEW


def reconcile(voter_record, event, now=None, signing_url=None):
    """signing_url is the URL this session already holds, if any"""
    allocation = tuple(voter_record.votes)
    already_voted = total_spent(allocation) > 0
    needs_signature = already_voted and not voter_record.signature_exists
    phase = event.phase(now)
    # A confirmed signature makes a held URL irrelevant
    if voter_record.signature_exists:
        signing_url = None
    return InitialUiState(
        already_voted=already_voted,
        needs_signature=needs_signature,
        phase=phase,
        view=select_view(already_voted, needs_signature, phase, bool(signing_url)),
        allocation=allocation,
        credits_remaining=remaining(event.credits_per_voter, allocation),
        signing_url=signing_url,
    )
