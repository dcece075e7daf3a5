# clubvote/routes.py

# JSON API: member login and voting, admin login and election control.
# Views only validate input, call the services and shape responses; session
# tokens travel in HTTP-only cookies, never in response bodies.

import logging

from flask import Blueprint, current_app, g, jsonify, request
from flask_limiter.errors import RateLimitExceeded
from werkzeug.exceptions import HTTPException

from clubvote import limiter
from clubvote.authentication.guards import (
    clear_session_cookie, require_admin_session, require_member_session, set_session_cookie,
)
from clubvote.errors import LoginLocked, ResultsUnavailable, VotingError
from clubvote.services import get_services
from clubvote.voting.election import ElectionState

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')
voting_bp = Blueprint('voting', __name__, url_prefix='/api/voting')
admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def auth_rate_limit():
    return current_app.config['AUTH_RATE_LIMIT']


def _json_body():
    return request.get_json(silent=True) or {}


# -- serializers -----------------------------------------------------------

def _status_payload(status):
    return {
        'isActive': status['is_active'],
        'startTime': status['start_time'],
        'endTime': status['end_time'],
        'duration': status['duration'],
        'timeRemaining': status['time_remaining'],
        'status': status['label'],
    }


def _results_payload(results):
    positions = {}
    for position_id, position in results.items():
        candidates = {}
        for candidate_id, tally in position['candidates'].items():
            item = {
                'id': tally['id'],
                'name': tally['name'],
                'votes': tally['votes'],
                'isWinner': tally['is_winner'],
            }
            if 'percentage' in tally:
                item['percentage'] = tally['percentage']
            candidates[candidate_id] = item
        entry = {
            'id': position['id'],
            'name': position['name'],
            'status': position['status'],
            'candidates': candidates,
        }
        if 'total_votes' in position:
            entry['totalVotes'] = position['total_votes']
        positions[position_id] = entry
    return positions


def _results_response(data):
    status = data['election_status']
    return {
        'success': True,
        'results': _results_payload(data['results']),
        'electionStatus': {
            'isActive': status['is_active'],
            'startTime': status['start_time'],
            'endTime': status['end_time'],
        },
    }


# -- member authentication -------------------------------------------------

@auth_bp.route('/login', methods=['POST'])
@limiter.limit(auth_rate_limit)
def login():
    services = get_services()
    phone_number = services.validator.validate_phone_number(_json_body().get('phoneNumber'))
    result = services.credentials.request_code(phone_number)
    return jsonify({'success': True, 'message': result['message']})


@auth_bp.route('/verify', methods=['POST'])
@limiter.limit(auth_rate_limit)
def verify():
    services = get_services()
    body = _json_body()
    if not body.get('phoneNumber') or not body.get('otp'):
        return jsonify({'success': False, 'message': 'Phone number and verification code are required'}), 400
    phone_number = services.validator.validate_phone_number(body.get('phoneNumber'))
    code = services.validator.validate_otp(body.get('otp'))

    result = services.credentials.verify_code(
        phone_number, code,
        ip_address=request.remote_addr,
        user_agent=request.headers.get('User-Agent'),
    )
    response = jsonify({
        'success': True,
        'message': 'Verification successful',
        'member': result['member'],
        'hasVoted': result['has_voted'],
        'voteId': result['vote_id'],
    })
    set_session_cookie(response, current_app.config['SESSION_COOKIE_NAME_MEMBER'], result['session_token'])
    return response


@auth_bp.route('/resend-otp', methods=['POST'])
@limiter.limit(auth_rate_limit)
def resend_otp():
    services = get_services()
    phone_number = services.validator.validate_phone_number(_json_body().get('phoneNumber'))
    result = services.credentials.resend_code(phone_number)
    return jsonify({'success': True, 'message': result['message']})


@auth_bp.route('/session', methods=['GET'])
@require_member_session
def member_session():
    session = g.member_session
    return jsonify({
        'success': True,
        'member': session['member'],
        'hasVoted': session['has_voted'],
        'voteId': session['vote_id'],
    })


@auth_bp.route('/logout', methods=['POST'])
def logout():
    cookie_name = current_app.config['SESSION_COOKIE_NAME_MEMBER']
    get_services().credentials.end_session(request.cookies.get(cookie_name))
    response = jsonify({'success': True, 'message': 'Logged out successfully'})
    clear_session_cookie(response, cookie_name)
    return response


# -- admin authentication --------------------------------------------------

@auth_bp.route('/admin/login', methods=['POST'])
@limiter.limit(auth_rate_limit)
def admin_login():
    services = get_services()
    body = _json_body()
    username, password = services.validator.validate_credentials(body.get('username'), body.get('password'))
    logger.info("Admin login attempt: username=%s", username)

    result = services.credentials.verify_admin_credentials(
        username, password,
        ip_address=request.remote_addr,
        user_agent=request.headers.get('User-Agent'),
    )
    response = jsonify({
        'success': True,
        'message': 'Admin login successful',
        'isUsingDefaultPassword': result['is_using_default_password'],
    })
    set_session_cookie(response, current_app.config['SESSION_COOKIE_NAME_ADMIN'], result['admin_token'])
    return response


@auth_bp.route('/admin/session', methods=['GET'])
@require_admin_session
def admin_session():
    return jsonify({
        'success': True,
        'isAdmin': True,
        'isUsingDefaultPassword': g.admin_session['is_using_default_password'],
    })


@auth_bp.route('/admin/logout', methods=['POST'])
def admin_logout():
    cookie_name = current_app.config['SESSION_COOKIE_NAME_ADMIN']
    get_services().credentials.end_session(request.cookies.get(cookie_name))
    response = jsonify({'success': True, 'message': 'Admin logged out successfully'})
    clear_session_cookie(response, cookie_name)
    return response


@auth_bp.route('/admin/change-password', methods=['POST'])
@require_admin_session
def admin_change_password():
    body = _json_body()
    current_password = body.get('currentPassword')
    new_password = body.get('newPassword')
    if not isinstance(current_password, str) or not isinstance(new_password, str) \
            or not current_password or not new_password:
        return jsonify({'success': False, 'message': 'Current and new password are required'}), 400

    result = get_services().credentials.change_admin_password(
        g.admin_session['owner_id'], current_password, new_password,
    )
    return jsonify({'success': True, 'message': result['message']})


# -- voting ----------------------------------------------------------------

@voting_bp.route('/ballot', methods=['GET'])
@require_member_session
def ballot():
    positions = get_services().ledger.get_ballot()
    return jsonify({'success': True, 'positions': positions})


@voting_bp.route('/submit', methods=['POST'])
@require_member_session
def submit():
    services = get_services()
    choices = services.validator.validate_vote_choices(_json_body().get('votes'))
    vote_id = services.ledger.submit_vote(g.member_session['owner_id'], choices)
    return jsonify({'success': True, 'message': 'Vote submitted successfully', 'voteId': vote_id})


@voting_bp.route('/results', methods=['GET'])
def public_results():
    services = get_services()
    if services.election.state() is not ElectionState.ENDED:
        raise ResultsUnavailable()
    return jsonify(_results_response(services.ledger.get_results(detailed=False)))


@voting_bp.route('/status', methods=['GET'])
def election_status():
    status = get_services().election.status()
    return jsonify({'success': True, 'status': _status_payload(status)})


# -- admin -----------------------------------------------------------------

@admin_bp.route('/dashboard', methods=['GET'])
@require_admin_session
def dashboard():
    data = get_services().dashboard.get_dashboard_data()
    return jsonify({
        'success': True,
        'totalVotes': data['total_votes'],
        'eligibleVoters': data['eligible_voters'],
        'eligibleMembers': data['eligible_members'],
        'turnout': data['turnout'],
        'electionStatus': data['election_status'],
        'timeRemaining': data['time_remaining'],
        'startTime': data['start_time'],
        'endTime': data['end_time'],
        'results': _results_payload(data['results']),
    })


@admin_bp.route('/election/start', methods=['POST'])
@require_admin_session
def start_election():
    services = get_services()
    duration = services.validator.validate_duration(_json_body().get('duration'))
    status = services.election.start(duration, actor_id=g.admin_session['owner_id'])
    return jsonify({
        'success': True,
        'message': 'Election started successfully',
        'electionStatus': _status_payload(status),
    })


@admin_bp.route('/election/stop', methods=['POST'])
@require_admin_session
def stop_election():
    status = get_services().election.stop(actor_id=g.admin_session['owner_id'])
    return jsonify({
        'success': True,
        'message': 'Election ended successfully',
        'electionStatus': _status_payload(status),
    })


@admin_bp.route('/results', methods=['GET'])
@require_admin_session
def admin_results():
    return jsonify(_results_response(get_services().ledger.get_results(detailed=True)))


# -- error handling --------------------------------------------------------

def handle_voting_error(error):
    response = jsonify(error.payload())
    if isinstance(error, LoginLocked):
        response.headers['Retry-After'] = str(error.retry_after_seconds)
    return response, error.status_code


def handle_rate_limit(error):
    return jsonify({'success': False, 'message': 'Too many requests. Please slow down.'}), 429


def handle_http_error(error):
    return jsonify({'success': False, 'message': error.description}), error.code


def handle_unexpected_error(error):
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return jsonify({'success': False, 'message': 'Internal server error'}), 500


def register_routes(app):
    app.register_blueprint(auth_bp)
    app.register_blueprint(voting_bp)
    app.register_blueprint(admin_bp)

    app.register_error_handler(VotingError, handle_voting_error)
    app.register_error_handler(RateLimitExceeded, handle_rate_limit)
    app.register_error_handler(HTTPException, handle_http_error)
    app.register_error_handler(Exception, handle_unexpected_error)
