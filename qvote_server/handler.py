import logging

from qvote_common.errors import AuthFailure, VoterNotFound
from qvote_common.ledger import total_spent, within_budget
from qvote_common.models import to_find_response
from .mudamos import SigningProviderError
from .state import EventState

logger = logging.getLogger("qvote_server.handler")


def handle_find(store, voter_id):
    """GET /api/events/find"""
    if not voter_id:
        return 400, "Missing voter id"
    try:
        voter = store.find_voter(voter_id)
    except VoterNotFound:
        logger.warning(f"Lookup for unknown voter id: {voter_id}")
        return 404, "Invalid voter id"
    event = store.get_event(voter.event_id)
    if event is None:
        logger.error(f"Voter {voter_id} points at missing event {voter.event_id}")
        return 404, "Invalid event id"
    return 200, to_find_response(voter, event)


def handle_vote(store, signer, payload, now=None):
    """POST /api/events/vote: re-validate, get a signing URL, persist both"""
    if not isinstance(payload, dict):
        return 400, "Malformed payload"
    voter_id = payload.get("id")
    votes = payload.get("votes")
    if not isinstance(voter_id, str):
        return 400, "Missing voter id"
    try:
        voter = store.find_voter(voter_id)
    except VoterNotFound:
        logger.warning(f"Vote for unknown voter id: {voter_id}")
        return 404, "Invalid voter id"
    event = store.get_event(voter.event_id)
    if event is None:
        return 404, "Invalid event id"

    event_state = EventState(event)
    if not event_state.accepts_votes(now):
        state = event_state.get_state(now)
        logger.warning(f"Vote from {voter_id} refused, event {event.id} is {state}")
        return 403, f"Event is {state}"
    if voter.signature_exists or total_spent(voter.votes) > 0:
        # Votes are written once; signing resumes from the stored URL
        logger.warning(f"Duplicate vote submission from {voter_id}")
        return 409, "Voter already voted"
    if not isinstance(votes, list) or len(votes) != len(event.options):
        return 400, f"Expected {len(event.options)} votes"
    if not within_budget(event.credits_per_voter, votes):
        logger.warning(f"Over-budget or malformed ballot from {voter_id}: {votes}")
        return 400, "Ballot exceeds the credit budget"

    if not store.claim_submission(voter_id):
        logger.warning(f"Concurrent vote submission from {voter_id}")
        return 409, "Voter already voted"
    try:
        url = signer.request_signing_url(voter, votes)
        store.update_voter(voter_id, votes=votes, mudamos_url=url)
    except SigningProviderError as e:
        logger.error(f"No signing URL for voter {voter_id}: {e}")
        return 502, "Signing provider unavailable"
    finally:
        store.release_claim(voter_id)
    logger.info(f"Vote stored for voter {voter_id}, awaiting signature.")
    return 200, {"url": url}


def handle_callback(store, verifier, payload, authorization):
    """POST /api/events/callback: record proof of signature"""
    try:
        verifier.check(authorization)
    except AuthFailure:
        logger.warning("Unauthorized signing callback.")
        return 401, "Unauthorized"
    if not isinstance(payload, dict) or not isinstance(payload.get("message"), str) \
            or not isinstance(payload.get("signature"), str):
        return 400, "Malformed payload"
    hash_ = payload["message"].split(";")[0]
    try:
        voter = store.find_voter_by_hash(hash_)
    except VoterNotFound:
        logger.warning(f"Signing callback for unknown hash: {hash_}")
        return 400, "Invalid voter id"
    store.update_voter(voter.id, signature=payload.get("signature"), public_key=payload.get("publicKey"))
    logger.info(f"Signature recorded for voter {voter.id}.")
    return 200, "Successful update"


def count_votes(store, event):
    """Per-option quadratic vote totals; only signed ballots are counted"""
    voters = store.voters_for(event.id)
    totals = [0] * len(event.options)
    voted = signed = 0
    for voter in voters:
        if total_spent(voter.votes) == 0:
            continue
        voted += 1
        if not voter.signature_exists:
            logger.debug(f"Voter {voter.id} has not signed yet. Skipping.")
            continue
        signed += 1
        for i, count in enumerate(voter.votes):
            totals[i] += count
    logger.debug(f"Event {event.id} totals: {totals}")
    results = sorted(
        ({"title": option.title, "votes": total} for option, total in zip(event.options, totals)),
        key=lambda item: item["votes"],
        reverse=True,
    )
    return {
        "results": results,
        "voters": len(voters),
        "voted": voted,
        "signed": signed,
    }


def handle_details(store, event_id, now=None):
    """GET /api/events/details: event dashboard data"""
    event = store.get_event(event_id)
    if event is None:
        return 404, "Invalid event id"
    event_state = EventState(event)
    data = {"event": event.to_dict()}
    data.update(count_votes(store, event))
    data["state"] = event_state.get_state(now)
    data["time_left"] = int(event_state.get_state_time_left(now))
    return 200, data
