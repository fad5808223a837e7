import logging
import os

import requests

from qvote_common.errors import SubmitError, VoterNotFound
from qvote_common.models import from_find_response

logger = logging.getLogger("qvote_client.api")

SERVER_URL = os.environ.get("QVOTE_SERVER_URL", "http://127.0.0.1:5000")
TIMEOUT = 30


class VoteApi:
    """HTTP access to the vote server for a single voter session"""

    def __init__(self, server_url=SERVER_URL, session=None):
        self.server_url = server_url.rstrip("/")
        self.session = session or requests.Session()

    def find_voter(self, voter_id):
        """Fetch (event, voter_record); any failure means the voter is unknown here"""
        url = f"{self.server_url}/api/events/find"
        try:
            response = self.session.get(url, params={"id": voter_id}, timeout=TIMEOUT)
            response.raise_for_status()
            return from_find_response(voter_id, response.json())
        except requests.exceptions.RequestException as e:
            logger.warning(f"Could not load voter {voter_id}: {e}")
            raise VoterNotFound(voter_id) from e
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Malformed voter data for {voter_id}: {e}")
            raise VoterNotFound(voter_id) from e

    def submit_votes(self, voter_id, votes, event_id=None, name=""):
        """POST the final allocation, return the signing URL"""
        url = f"{self.server_url}/api/events/vote"
        payload = {"id": voter_id, "votes": list(votes), "name": name}
        try:
            response = self.session.post(url, json=payload, timeout=TIMEOUT)
        except requests.exceptions.RequestException as e:
            logger.error(f"Vote submission for {voter_id} failed: {e}")
            raise SubmitError(str(e), event_id=event_id, voter_id=voter_id) from e

        if response.status_code != 200:
            logger.warning(f"Vote submission for {voter_id} refused ({response.status_code}): {response.text}")
            raise SubmitError(response.text, event_id=event_id, voter_id=voter_id,
                              status=response.status_code)
        try:
            data = response.json()
        except ValueError:
            data = None
        signing_url = data.get("url") if isinstance(data, dict) else None
        if not signing_url:
            raise SubmitError("Server did not return a signing URL", event_id=event_id,
                              voter_id=voter_id, status=response.status_code)
        return signing_url
