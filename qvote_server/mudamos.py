import json
import logging

import requests
from Crypto.Hash import SHA256

from qvote_common.errors import QVoteError
from . import config

logger = logging.getLogger("qvote_server.mudamos")


class SigningProviderError(QVoteError):
    """Mudamos did not hand out a signing URL"""


def vote_digest(event_id, votes):
    payload = json.dumps({"event": event_id, "votes": list(votes)}, separators=(",", ":"), sort_keys=True)
    return SHA256.new(payload.encode("utf-8")).hexdigest()


def build_message(voter, votes):
    # The callback finds the voter again by the first segment
    return ";".join([voter.hash, voter.event_id, vote_digest(voter.event_id, votes)])


class MudamosSigner:
    """Asks the Mudamos API for a URL where the voter signs the vote message"""

    def __init__(self, api_url=None, token=None, session=None, timeout=config.MUDAMOS_TIMEOUT):
        self.api_url = api_url if api_url is not None else config.MUDAMOS_API_URL
        self.token = token if token is not None else config.MUDAMOS_API_TOKEN
        self.session = session or requests.Session()
        self.timeout = timeout

    def request_signing_url(self, voter, votes):
        if not self.api_url:
            raise SigningProviderError("MUDAMOS_API_URL is not configured")
        message = build_message(voter, votes)
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            response = self.session.post(self.api_url, json={"message": message},
                                         headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Mudamos request for voter {voter.id} failed: {e}")
            raise SigningProviderError(str(e)) from e
        except ValueError as e:
            logger.error(f"Mudamos returned malformed JSON for voter {voter.id}: {e}")
            raise SigningProviderError("Malformed provider response") from e
        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            raise SigningProviderError("Provider response has no url")
        logger.info(f"Signing URL issued for voter {voter.id}.")
        return url
