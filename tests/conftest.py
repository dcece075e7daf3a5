import pytest

from clubvote import create_app, db
from clubvote.messaging.sms import SMSChannel
from clubvote.services import get_services

START_MS = 1_700_000_000_000
MINUTE_MS = 60 * 1000

ALICE_PHONE = '+15550000001'
BOB_PHONE = '+15550000002'
CAROL_PHONE = '+15550000003'
INELIGIBLE_PHONE = '+15550000009'

ADMIN_USERNAME = 'returning.officer'
ADMIN_PASSWORD = 'InitialPass123!'


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, start=START_MS):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class RecordingSMSChannel(SMSChannel):
    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send_code(self, phone_number, code, ttl_minutes=10):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((phone_number, code))
        return {'sid': 'TEST', 'status': 'queued', 'to': phone_number}

    def last_code(self, phone_number):
        for phone, code in reversed(self.sent):
            if phone == phone_number:
                return code
        return None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sms():
    return RecordingSMSChannel()


@pytest.fixture
def app(tmp_path, clock, sms):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'clubvote-test.sqlite'}",
        'AUDIT_LOG_DIR': str(tmp_path / 'logs'),
        'RATELIMIT_ENABLED': False,
        'PASSWORD_HASH_TIME_COST': 1,
        'PASSWORD_HASH_MEMORY_COST': 1024,
        'SESSION_DURATION_MS': 30 * MINUTE_MS,
    }, clock=clock, sms_channel=sms)

    with app.app_context():
        yield app
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    # no `with` block: several clients may be open in one test
    return app.test_client()


@pytest.fixture
def services(app):
    return get_services()


def _timestamps(clock, offset):
    return {'created_at': clock.now + offset, 'updated_at': clock.now + offset}


@pytest.fixture
def seed(services, clock):
    """Two active positions with candidates, one retired position and four members."""
    store = services.store
    positions = [
        ('pos_president', 'President', True),
        ('pos_treasurer', 'Treasurer', True),
        ('pos_historian', 'Historian', False),
    ]
    for offset, (position_id, name, active) in enumerate(positions):
        store.create('positions', dict(
            id=position_id, name=name, description=f'{name} of the club',
            is_active=active, **_timestamps(clock, offset)))

    candidates = [
        ('cand_alice', 'Alice Adams', 'pos_president', True),
        ('cand_bruno', 'Bruno Baker', 'pos_president', True),
        ('cand_chen', 'Chen Cho', 'pos_president', True),
        ('cand_retired', 'Rita Retired', 'pos_president', False),
        ('cand_dana', 'Dana Diaz', 'pos_treasurer', True),
        ('cand_eli', 'Eli Evans', 'pos_treasurer', True),
        ('cand_hal', 'Hal Hughes', 'pos_historian', True),
    ]
    for offset, (candidate_id, name, position_id, active) in enumerate(candidates):
        store.create('candidates', dict(
            id=candidate_id, name=name, position_id=position_id, photo=None,
            info=f'About {name}', is_active=active, **_timestamps(clock, offset)))

    members = [
        ('mem_alice', 'Alice Member', ALICE_PHONE, 'M-001', True),
        ('mem_bob', 'Bob Member', BOB_PHONE, 'M-002', True),
        ('mem_carol', 'Carol Member', CAROL_PHONE, 'M-003', True),
        ('mem_ivan', 'Ivan Ineligible', INELIGIBLE_PHONE, 'M-009', False),
    ]
    for offset, (member_id, name, phone, number, eligible) in enumerate(members):
        store.create('members', dict(
            id=member_id, name=name, phone_number=phone, membership_number=number,
            is_eligible=eligible, **_timestamps(clock, offset)))
    return store


@pytest.fixture
def admin(services, clock):
    return services.store.create('admins', {
        'id': 'admin_1',
        'username': ADMIN_USERNAME,
        'password_hash': services.passwords.hash_password(ADMIN_PASSWORD, enforce_policy=False),
        'is_default_password': True,
        'name': 'Returning Officer',
        'email': 'officer@example.com',
        'is_active': True,
        'created_at': clock.now,
        'updated_at': clock.now,
    })


def add_members(store, clock, count, prefix='extra'):
    ids = []
    for i in range(count):
        member_id = f'mem_{prefix}_{i}'
        store.create('members', dict(
            id=member_id, name=f'Extra {i}', phone_number=f'+1555100{i:04d}',
            membership_number=f'X-{prefix}-{i}', is_eligible=True,
            **_timestamps(clock, i)))
        ids.append(member_id)
    return ids
