# clubvote/voting/ledger.py

import logging
import threading
from collections import defaultdict

from sqlalchemy.exc import IntegrityError

from clubvote.audit.audit_logger import hash_identifier
from clubvote.errors import (
    AlreadyVoted, ElectionNotActive, InvalidCandidate, InvalidPosition,
)
from clubvote.security.tokens import generate_record_id
from clubvote.voting.election import ElectionState

logger = logging.getLogger(__name__)


def _by_creation(record):
    return (record.get('created_at') or 0, str(record['id']))


class VoteLedger:
    """Ballot construction, one-vote-per-member recording and tabulation.

    Submissions for the same member are serialized by a per-member lock
    around the whole check-then-append sequence; the unique constraint on
    votes.member_id backs it up at the storage layer.
    """

    def __init__(self, store, election, clock, audit_logger=None):
        self.store = store
        self.election = election
        self.clock = clock
        self.audit = audit_logger
        self._member_locks = defaultdict(threading.Lock)
        self._member_locks_guard = threading.Lock()

    def _lock_for(self, member_id):
        with self._member_locks_guard:
            return self._member_locks[member_id]

    def _active_positions(self):
        positions = [p for p in self.store.read('positions') if p['is_active']]
        return sorted(positions, key=_by_creation)

    def _active_candidates(self):
        candidates = [c for c in self.store.read('candidates') if c['is_active']]
        return sorted(candidates, key=_by_creation)

    def get_ballot(self):
        """Active positions with their active candidates, no tally data."""
        if not self.election.is_active():
            raise ElectionNotActive()

        candidates = self._active_candidates()
        ballot = []
        for position in self._active_positions():
            ballot.append({
                'id': position['id'],
                'name': position['name'],
                'description': position['description'],
                'candidates': [
                    {
                        'id': c['id'],
                        'name': c['name'],
                        'photo': c['photo'],
                        'info': c['info'],
                    }
                    for c in candidates if c['position_id'] == position['id']
                ],
            })
        return ballot

    def find_vote(self, member_id):
        return self.store.find_by('votes', 'member_id', member_id)

    def submit_vote(self, member_id, choices):
        """Record `choices` ({position_id: candidate_id}) as the member's only vote.

        Checks run in order: election active, not yet voted, positions valid,
        candidates valid. Nothing is written unless all of them pass.
        """
        with self._lock_for(member_id):
            if not self.election.is_active():
                raise ElectionNotActive()

            existing = self.find_vote(member_id)
            if existing is not None:
                logger.warning("Duplicate vote attempt by member %s", member_id)
                self._audit('duplicate_vote_attempt', member_id)
                raise AlreadyVoted(existing['id'])

            active_position_ids = {str(p['id']) for p in self._active_positions()}
            for position_id in choices:
                if str(position_id) not in active_position_ids:
                    raise InvalidPosition(position_id)

            candidates = self._active_candidates()
            for position_id, candidate_id in choices.items():
                valid = any(
                    str(c['id']) == str(candidate_id) and str(c['position_id']) == str(position_id)
                    for c in candidates
                )
                if not valid:
                    raise InvalidCandidate(position_id, candidate_id)

            now = self.clock()
            vote_id = generate_record_id('vote', now)
            record = {
                'id': vote_id,
                'member_id': member_id,
                'timestamp': now,
                'votes': {str(p): str(c) for p, c in choices.items()},
            }
            try:
                self.store.create('votes', record)
            except IntegrityError:
                existing = self.find_vote(member_id)
                if existing is None:
                    raise
                raise AlreadyVoted(existing['id'])

            logger.info("Vote %s recorded", vote_id)
            self._audit('vote_cast', member_id, vote_id=vote_id)
            return vote_id

    def _audit(self, event_type, member_id, **data):
        if self.audit is not None:
            data['member_ref'] = hash_identifier(member_id)
            self.audit.log_event(event_type, data)

    def get_results(self, detailed=False):
        """Tally votes per active position.

        Votes naming a candidate that is no longer active are kept in the store
        but not counted. Winners are only marked once the election has ended;
        every candidate sharing a non-zero maximum is a winner.
        """
        status = self.election.status()
        ended = ElectionState(status['label']) is ElectionState.ENDED
        candidates = self._active_candidates()
        votes = self.store.read('votes')

        results = {}
        for position in self._active_positions():
            tallies = {
                c['id']: {'id': c['id'], 'name': c['name'], 'votes': 0, 'is_winner': False}
                for c in candidates if c['position_id'] == position['id']
            }

            for vote in votes:
                candidate_id = vote['votes'].get(str(position['id']))
                if candidate_id is not None and candidate_id in tallies:
                    tallies[candidate_id]['votes'] += 1

            if ended and tallies:
                max_votes = max(t['votes'] for t in tallies.values())
                if max_votes > 0:
                    for tally in tallies.values():
                        tally['is_winner'] = tally['votes'] == max_votes

            entry = {
                'id': position['id'],
                'name': position['name'],
                'status': status['label'],
                'candidates': tallies,
            }
            if detailed:
                total = sum(t['votes'] for t in tallies.values())
                entry['total_votes'] = total
                for tally in tallies.values():
                    tally['percentage'] = round(tally['votes'] * 100.0 / total, 1) if total else 0.0
            results[position['id']] = entry

        return {
            'results': results,
            'election_status': {
                'is_active': status['is_active'],
                'start_time': status['start_time'],
                'end_time': status['end_time'],
            },
        }
