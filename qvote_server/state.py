import logging
import threading

from qvote_common.models import NOT_STARTED, OPEN, parse_datetime, utc_now

logger = logging.getLogger("qvote_server.state")


class EventState:
    """Voting phase of an event, derived from its start and end dates"""

    def __init__(self, event):
        self.event = event
        self.lock = threading.Lock()
        self._last_state = None

    def get_state(self, now=None):
        state = self.event.phase(now)
        with self.lock:
            if state != self._last_state:
                if self._last_state is not None:
                    logger.info(f"Event {self.event.id}: {self._last_state} state ended, now {state}")
                self._last_state = state
        return state

    def get_state_time_left(self, now=None):
        """Seconds until the next phase starts; 0 once the event ended"""
        now = parse_datetime(now) if now is not None else utc_now()
        state = self.get_state(now)
        if state == NOT_STARTED:
            return max(0, (self.event.start_date - now).total_seconds())
        if state == OPEN:
            return max(0, (self.event.end_date - now).total_seconds())
        return 0

    def accepts_votes(self, now=None):
        return self.get_state(now) == OPEN
