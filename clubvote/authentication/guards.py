# clubvote/authentication/guards.py

import logging
from functools import wraps

from flask import after_this_request, current_app, g, request

from clubvote.errors import AuthenticationRequired
from clubvote.services import get_services

logger = logging.getLogger(__name__)

# Route decorators that resolve the session cookie before the view runs.
# A missing, unknown or expired token raises AuthenticationRequired (401) and
# clears the cookie. A valid token has its cookie re-issued so the browser
# keeps it for as long as the sliding server-side session lives.


def set_session_cookie(response, name, token):
    response.set_cookie(
        name,
        token,
        max_age=current_app.config['SESSION_DURATION_MS'] // 1000,
        httponly=True,
        secure=current_app.config['SESSION_COOKIE_SECURE'],
        samesite='Strict',
    )


def clear_session_cookie(response, name):
    response.delete_cookie(name, httponly=True, samesite='Strict')


def _refresh_cookie(cookie_name, token):
    @after_this_request
    def refresh(response):
        set_session_cookie(response, cookie_name, token)
        return response


def _reject(cookie_name, message):
    @after_this_request
    def clear(response):
        clear_session_cookie(response, cookie_name)
        return response

    raise AuthenticationRequired(message)


def require_member_session(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        cookie_name = current_app.config['SESSION_COOKIE_NAME_MEMBER']
        token = request.cookies.get(cookie_name)
        if not token:
            raise AuthenticationRequired()

        session = get_services().credentials.validate_session(token)
        if session is None:
            _reject(cookie_name, 'Session expired or invalid')

        g.member_session = session
        _refresh_cookie(cookie_name, token)
        return func(*args, **kwargs)
    return wrapper


def require_admin_session(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        cookie_name = current_app.config['SESSION_COOKIE_NAME_ADMIN']
        token = request.cookies.get(cookie_name)
        if not token:
            raise AuthenticationRequired('Admin authentication required')

        session = get_services().credentials.validate_admin_session(token)
        if session is None:
            logger.info("Rejected invalid admin token from %s", request.remote_addr)
            _reject(cookie_name, 'Admin session expired or invalid')

        g.admin_session = session
        _refresh_cookie(cookie_name, token)
        return func(*args, **kwargs)
    return wrapper
