# clubvote/voting/election.py
"""Election lifecycle: NotStarted -> Active -> Ended.

The status document is the only state. Every read recomputes it, and an
Active election whose duration has run out is closed on that read
(auto-close) rather than by a timer. An Ended election is never reopened.
All transitions, including the implicit one, run under one process-wide
lock so {is_active, start_time, end_time} is always written as a unit.
"""

import logging
import threading
from enum import Enum

from clubvote.errors import AlreadyActive, ElectionAlreadyEnded, NotActive

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000
MINUTE_MS = 60 * 1000


class ElectionState(Enum):
    NOT_STARTED = "Not Started"
    ACTIVE = "In Progress"
    ENDED = "Ended"


def state_of(document):
    if document['is_active']:
        return ElectionState.ACTIVE
    if document['end_time'] is not None:
        return ElectionState.ENDED
    return ElectionState.NOT_STARTED


def format_remaining(remaining_ms):
    remaining_ms = max(0, remaining_ms)
    hours = remaining_ms // HOUR_MS
    minutes = (remaining_ms % HOUR_MS) // MINUTE_MS
    return f"{hours}h {minutes}m"


class ElectionStateMachine:
    def __init__(self, documents, clock, default_duration_ms=24 * HOUR_MS, audit_logger=None):
        self.documents = documents
        self.clock = clock
        self.default_duration_ms = default_duration_ms
        self.audit = audit_logger
        self._lock = threading.RLock()

    def _audit(self, event_type, data, actor_id=None):
        if self.audit is not None:
            self.audit.log_event(event_type, data, actor_id=actor_id)

    def _refresh(self, now):
        """Load the document, closing it first if its duration has elapsed."""
        document = self.documents.get()
        if document['is_active'] and document['start_time'] is not None:
            if now >= document['start_time'] + document['duration']:
                document = self.documents.put({'is_active': False, 'end_time': now})
                logger.info("Election auto-closed at %s after %sms", now, document['duration'])
                self._audit('election_auto_closed', {'end_time': now})
        return document

    def start(self, duration=None, actor_id=None):
        with self._lock:
            now = self.clock()
            document = self._refresh(now)
            state = state_of(document)
            if state is ElectionState.ACTIVE:
                raise AlreadyActive()
            if state is ElectionState.ENDED:
                raise ElectionAlreadyEnded()

            document = self.documents.put({
                'is_active': True,
                'start_time': now,
                'end_time': None,
                'duration': duration or self.default_duration_ms,
            })
            logger.info("Election started, duration %sms", document['duration'])
            self._audit('election_started', {'duration': document['duration']}, actor_id=actor_id)
            return self._describe(document, now)

    def stop(self, actor_id=None):
        with self._lock:
            now = self.clock()
            document = self._refresh(now)
            if not document['is_active']:
                raise NotActive()

            document = self.documents.put({'is_active': False, 'end_time': now})
            logger.info("Election stopped at %s", now)
            self._audit('election_stopped', {'end_time': now}, actor_id=actor_id)
            return self._describe(document, now)

    def status(self):
        with self._lock:
            now = self.clock()
            was_active = self.documents.get()['is_active']
            document = self._refresh(now)
            status = self._describe(document, now)
            if was_active and not document['is_active']:
                # the read that closed the election reports the exhausted clock
                status['time_remaining'] = format_remaining(0)
                status['time_remaining_ms'] = 0
            return status

    def state(self):
        return ElectionState(self.status()['label'])

    def is_active(self):
        return self.status()['is_active']

    def _describe(self, document, now):
        state = state_of(document)
        remaining_ms = None
        time_remaining = None
        if state is ElectionState.ACTIVE:
            remaining_ms = max(0, document['start_time'] + document['duration'] - now)
            time_remaining = format_remaining(remaining_ms)
        return {
            'is_active': document['is_active'],
            'start_time': document['start_time'],
            'end_time': document['end_time'],
            'duration': document['duration'],
            'time_remaining': time_remaining,
            'time_remaining_ms': remaining_ms,
            'label': state.value,
        }
