# clubvote/voting/dashboard.py

# Read-only composition of membership, election status and tallies for admins


class DashboardAggregator:
    def __init__(self, store, election, ledger):
        self.store = store
        self.election = election
        self.ledger = ledger

    def get_dashboard_data(self):
        # Every registered member counts as an eligible voter here; the
        # eligibility flag only gates login and is reported separately.
        eligible_voters = self.store.count('members')
        eligible_members = self.store.count('members', is_eligible=True)
        total_votes = self.store.count('votes')
        status = self.election.status()
        results = self.ledger.get_results(detailed=True)['results']

        turnout = round(total_votes * 100.0 / eligible_voters, 1) if eligible_voters else 0.0
        return {
            'total_votes': total_votes,
            'eligible_voters': eligible_voters,
            'eligible_members': eligible_members,
            'turnout': turnout,
            'election_status': status['label'],
            'time_remaining': status['time_remaining'],
            'start_time': status['start_time'],
            'end_time': status['end_time'],
            'results': results,
        }
