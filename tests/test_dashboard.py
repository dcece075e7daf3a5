from conftest import MINUTE_MS


def test_dashboard_before_election(services, seed):
    data = services.dashboard.get_dashboard_data()

    assert data['total_votes'] == 0
    assert data['eligible_voters'] == 4
    assert data['eligible_members'] == 3
    assert data['turnout'] == 0.0
    assert data['election_status'] == 'Not Started'
    assert data['time_remaining'] is None
    assert data['start_time'] is None
    assert set(data['results']) == {'pos_president', 'pos_treasurer'}


def test_dashboard_during_election(services, seed, clock):
    services.election.start(duration=2 * 60 * MINUTE_MS)
    services.ledger.submit_vote('mem_alice', {'pos_president': 'cand_alice'})
    clock.advance(30 * MINUTE_MS)

    data = services.dashboard.get_dashboard_data()
    assert data['total_votes'] == 1
    assert data['turnout'] == 25.0
    assert data['election_status'] == 'In Progress'
    assert data['time_remaining'] == '1h 30m'

    president = data['results']['pos_president']
    assert president['total_votes'] == 1
    assert president['candidates']['cand_alice']['percentage'] == 100.0
    assert president['candidates']['cand_alice']['is_winner'] is False


def test_dashboard_after_election(services, seed, clock):
    services.election.start()
    services.ledger.submit_vote('mem_alice', {'pos_president': 'cand_alice'})
    services.ledger.submit_vote('mem_bob', {'pos_president': 'cand_alice'})
    clock.advance(MINUTE_MS)
    services.election.stop()

    data = services.dashboard.get_dashboard_data()
    assert data['election_status'] == 'Ended'
    assert data['end_time'] == clock.now
    assert data['time_remaining'] is None
    assert data['results']['pos_president']['candidates']['cand_alice']['is_winner'] is True


def test_dashboard_without_members(services):
    data = services.dashboard.get_dashboard_data()
    assert data['eligible_voters'] == 0
    assert data['turnout'] == 0.0
    assert data['results'] == {}
