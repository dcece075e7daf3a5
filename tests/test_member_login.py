import pytest

from clubvote.errors import (
    ChallengeExpired, CodeMismatch, DeliveryError, NoActiveChallenge,
    TooManyAttempts, UnknownIdentity,
)
from conftest import ALICE_PHONE, BOB_PHONE, INELIGIBLE_PHONE, MINUTE_MS


@pytest.fixture
def credentials(services, seed):
    return services.credentials


def wrong_code(code):
    return str((int(code) + 1) % (10 ** len(code))).zfill(len(code))


def test_request_code_sends_numeric_code_without_returning_it(credentials, sms):
    result = credentials.request_code(ALICE_PHONE)

    assert 'code' not in result
    assert len(sms.sent) == 1
    phone, code = sms.sent[0]
    assert phone == ALICE_PHONE
    assert code.isdigit() and len(code) == 6


def test_request_code_unknown_or_ineligible_member(credentials, sms):
    with pytest.raises(UnknownIdentity):
        credentials.request_code('+15559999999')
    with pytest.raises(UnknownIdentity):
        credentials.request_code(INELIGIBLE_PHONE)
    assert sms.sent == []


def test_verify_code_creates_member_session(credentials, sms, services, clock):
    credentials.request_code(ALICE_PHONE)
    result = credentials.verify_code(ALICE_PHONE, sms.last_code(ALICE_PHONE))

    assert result['member'] == {'id': 'mem_alice', 'name': 'Alice Member'}
    assert result['has_voted'] is False
    assert result['vote_id'] is None

    session = services.store.find_by('sessions', 'id', result['session_token'])
    assert session['owner_type'] == 'member'
    assert session['owner_id'] == 'mem_alice'
    assert session['expires_at'] == clock.now + 30 * MINUTE_MS


def test_code_is_single_use(credentials, sms):
    credentials.request_code(ALICE_PHONE)
    code = sms.last_code(ALICE_PHONE)
    credentials.verify_code(ALICE_PHONE, code)

    with pytest.raises(NoActiveChallenge):
        credentials.verify_code(ALICE_PHONE, code)


def test_verify_without_request(credentials):
    with pytest.raises(NoActiveChallenge):
        credentials.verify_code(BOB_PHONE, '123456')


def test_expired_code_never_matches(credentials, sms, services, clock):
    credentials.request_code(ALICE_PHONE)
    code = sms.last_code(ALICE_PHONE)

    clock.advance(10 * MINUTE_MS + 1)
    with pytest.raises(ChallengeExpired):
        credentials.verify_code(ALICE_PHONE, code)
    # the expired entry is evicted
    assert services.otp_codes.pending(ALICE_PHONE) is None
    with pytest.raises(NoActiveChallenge):
        credentials.verify_code(ALICE_PHONE, code)


def test_code_valid_right_up_to_expiry(credentials, sms, clock):
    credentials.request_code(ALICE_PHONE)
    clock.advance(10 * MINUTE_MS)
    result = credentials.verify_code(ALICE_PHONE, sms.last_code(ALICE_PHONE))
    assert result['member']['id'] == 'mem_alice'


def test_mismatch_keeps_challenge_and_counts_attempt(credentials, sms, services):
    credentials.request_code(ALICE_PHONE)
    code = sms.last_code(ALICE_PHONE)

    with pytest.raises(CodeMismatch):
        credentials.verify_code(ALICE_PHONE, wrong_code(code))
    assert services.otp_codes.pending(ALICE_PHONE).attempts == 1

    result = credentials.verify_code(ALICE_PHONE, code)
    assert result['member']['id'] == 'mem_alice'


def test_sixth_attempt_rejected_even_with_correct_code(credentials, sms, services):
    credentials.request_code(ALICE_PHONE)
    code = sms.last_code(ALICE_PHONE)

    for _ in range(5):
        with pytest.raises(CodeMismatch):
            credentials.verify_code(ALICE_PHONE, wrong_code(code))

    with pytest.raises(TooManyAttempts):
        credentials.verify_code(ALICE_PHONE, code)
    assert services.otp_codes.pending(ALICE_PHONE) is None


def test_correct_code_on_fifth_check_succeeds(credentials, sms, services):
    credentials.request_code(ALICE_PHONE)
    code = sms.last_code(ALICE_PHONE)

    for _ in range(4):
        with pytest.raises(CodeMismatch):
            credentials.verify_code(ALICE_PHONE, wrong_code(code))

    result = credentials.verify_code(ALICE_PHONE, code)
    assert result['member']['id'] == 'mem_alice'
    assert services.otp_codes.pending(ALICE_PHONE) is None


def test_resend_invalidates_previous_code(credentials, sms):
    credentials.request_code(ALICE_PHONE)
    first = sms.last_code(ALICE_PHONE)
    credentials.resend_code(ALICE_PHONE)
    second = sms.last_code(ALICE_PHONE)

    if first != second:
        with pytest.raises(CodeMismatch):
            credentials.verify_code(ALICE_PHONE, first)
    assert credentials.verify_code(ALICE_PHONE, second)['member']['id'] == 'mem_alice'


def test_resend_resets_attempt_counter(credentials, sms, services):
    credentials.request_code(ALICE_PHONE)
    code = sms.last_code(ALICE_PHONE)
    for _ in range(4):
        with pytest.raises(CodeMismatch):
            credentials.verify_code(ALICE_PHONE, wrong_code(code))

    credentials.resend_code(ALICE_PHONE)
    assert services.otp_codes.pending(ALICE_PHONE).attempts == 0


def test_failed_delivery_leaves_no_usable_code(credentials, sms, services):
    sms.fail_with = DeliveryError()
    with pytest.raises(DeliveryError):
        credentials.request_code(ALICE_PHONE)

    assert services.otp_codes.pending(ALICE_PHONE) is None


def test_verify_reports_existing_vote(credentials, sms, services, clock):
    services.election.start()
    vote_id = services.ledger.submit_vote('mem_alice', {'pos_president': 'cand_alice'})

    credentials.request_code(ALICE_PHONE)
    result = credentials.verify_code(ALICE_PHONE, sms.last_code(ALICE_PHONE))
    assert result['has_voted'] is True
    assert result['vote_id'] == vote_id


def test_codes_are_per_contact(credentials, sms):
    credentials.request_code(ALICE_PHONE)
    credentials.request_code(BOB_PHONE)

    bob = credentials.verify_code(BOB_PHONE, sms.last_code(BOB_PHONE))
    alice = credentials.verify_code(ALICE_PHONE, sms.last_code(ALICE_PHONE))
    assert bob['member']['id'] == 'mem_bob'
    assert alice['member']['id'] == 'mem_alice'
