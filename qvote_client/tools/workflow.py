import logging
import threading

from qvote_common.errors import SubmitError, InvalidTransition
from .ballot import EDITING, SUBMITTING as BALLOT_SUBMITTING

logger = logging.getLogger("qvote_client.workflow")

IDLE = "IDLE"
SUBMITTING = "SUBMITTING"
SIGNING_REQUIRED = "SIGNING_REQUIRED"
REJECTED = "REJECTED"
FAILED = "FAILED"

# Signature session, derived from the record and the locally held URL
NO_SIGNATURE_NEEDED = "NO_SIGNATURE_NEEDED"
AWAITING_URL = "AWAITING_URL"
AWAITING_USER_SIGNATURE = "AWAITING_USER_SIGNATURE"
CONFIRMED = "CONFIRMED"


class SubmissionWorkflow:
    """
    Posts a finished ballot and tracks the Mudamos signature step.

    Once a signing URL is known the workflow stays in SIGNING_REQUIRED; the
    signature itself is confirmed out of band and only shows up on the next
    reconciliation of the voter record. Failures are surfaced once and never
    retried automatically.
    """

    def __init__(self, api, voter_id, event_id):
        self.api = api
        self.voter_id = voter_id
        self.event_id = event_id
        self.state = IDLE
        self.signing_url = None
        self.retrying = False
        self.error = None
        self.lock = threading.Lock()

    def submit(self, machine, name=""):
        with self.lock:
            if self.state in (SUBMITTING, SIGNING_REQUIRED):
                raise InvalidTransition(self.state, SUBMITTING)
            self.state = SUBMITTING
            self.error = None

        try:
            ballot = machine.begin_submit()
        except InvalidTransition:
            with self.lock:
                self.state = IDLE
            raise

        logger.info(f"Submitting votes {list(ballot.allocation)} for voter {self.voter_id}.")
        try:
            url = self.api.submit_votes(self.voter_id, ballot.allocation,
                                        event_id=self.event_id, name=name)
        except SubmitError as e:
            e.event_id = e.event_id or self.event_id
            e.voter_id = e.voter_id or self.voter_id
            with self.lock:
                self.state = REJECTED if e.rejected else FAILED
                self.error = e
            machine.submission_failed()
            logger.warning(f"Submission for voter {self.voter_id} ended in {self.state}: {e}")
            raise
        except Exception as e:
            with self.lock:
                self.state = FAILED
                self.error = SubmitError(str(e), event_id=self.event_id, voter_id=self.voter_id)
            machine.submission_failed()
            logger.exception(f"Submission for voter {self.voter_id} failed unexpectedly")
            raise

        with self.lock:
            self.state = SIGNING_REQUIRED
            self.signing_url = url
        self.hide_ballot_on_sign(machine)
        logger.info(f"Voter {self.voter_id} must now sign at {url}")
        return url

    def retry_signing(self, voter_record, machine=None):
        """Resume the signature step with the URL stored at submission time"""
        if not voter_record.mudamos_url:
            raise SubmitError("No signing URL stored for this voter",
                              event_id=self.event_id, voter_id=self.voter_id)
        with self.lock:
            self.state = SIGNING_REQUIRED
            self.signing_url = voter_record.mudamos_url
            self.retrying = True
        if machine is not None:
            self.hide_ballot_on_sign(machine)
        logger.info(f"Voter {self.voter_id} retrying signature.")
        return self.signing_url

    def hide_ballot_on_sign(self, machine):
        if machine.state in (EDITING, BALLOT_SUBMITTING):
            machine.await_signature()

    def signature_session(self, voter_record):
        if voter_record.signature_exists:
            return CONFIRMED, None
        with self.lock:
            url = self.signing_url
            state = self.state
        if url:
            return AWAITING_USER_SIGNATURE, url
        if state == SUBMITTING or any(voter_record.votes):
            return AWAITING_URL, None
        return NO_SIGNATURE_NEEDED, None

    def success_route(self):
        return f"success?event={self.event_id}&user={self.voter_id}"
