import logging

from qvote_common.errors import VoteRejected, VoterNotFound
from qvote_common.models import OPEN
from .ballot import BallotMachine, VoteResult
from .reconcile import reconcile, SIGNATURE_RETRY_VIEW
from .workflow import SubmissionWorkflow

logger = logging.getLogger("qvote_client.votemanager")


class VoteSession:
    """
    One voter's page session: load, reconcile, edit, submit, sign.

    Reloading builds everything again from the server record, which is how a
    signature confirmed through the callback becomes visible.
    """

    def __init__(self, api, voter_id):
        self.api = api
        self.voter_id = voter_id
        self.event = None
        self.record = None
        self.ui = None
        self.machine = None
        self.workflow = None

    def load(self, now=None):
        try:
            self.event, self.record = self.api.find_voter(self.voter_id)
        except VoterNotFound:
            logger.warning(f"Unknown voter {self.voter_id}, sending to the entry page.")
            raise
        signing_url = self.workflow.signing_url if self.workflow else None
        self.ui = reconcile(self.record, self.event, now=now, signing_url=signing_url)
        self.machine = BallotMachine.initialize(self.record, self.event)
        if self.workflow is None:
            self.workflow = SubmissionWorkflow(self.api, self.voter_id, self.event.id)
        elif signing_url and not self.record.signature_exists:
            self.workflow.hide_ballot_on_sign(self.machine)
        logger.info(f"Voter {self.voter_id} loaded: view={self.ui.view}, phase={self.ui.phase}")
        return self.ui

    def refresh(self, now=None):
        self.ui = reconcile(self.record, self.event, now=now,
                            signing_url=self.workflow.signing_url if self.workflow else None)
        return self.ui

    def vote(self, index, increment, now=None):
        phase = self.event.phase(now)
        if phase != OPEN:
            return VoteResult(self.machine.render(), VoteRejected(f"Event is {phase}.", index))
        return self.machine.apply_vote(index, increment)

    def toggle(self, index):
        return self.machine.toggle_description(index)

    def submit(self, now=None):
        url = self.workflow.submit(self.machine)
        self.refresh(now)
        return url

    def retry_signing(self, now=None):
        url = self.workflow.retry_signing(self.record, self.machine)
        self.refresh(now)
        return url

    def needs_retry_prompt(self):
        return self.ui is not None and self.ui.view == SIGNATURE_RETRY_VIEW

    def signature_session(self):
        return self.workflow.signature_session(self.record)
