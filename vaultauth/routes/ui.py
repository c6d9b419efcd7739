"""Provides Flask integration for the sign-up and sign-in endpoints."""

from typing import Any
import logging

from flask import Blueprint, request, make_response, jsonify, current_app, \
    Response

from .. import domain
from ..controllers import authentication
from ..controllers.authentication import RequestContext
from ..decorators import anonymous_only, authenticated_only, role_required

logger = logging.getLogger(__name__)
blueprint = Blueprint('ui', __name__, url_prefix='')


def _context() -> RequestContext:
    cookie_name = current_app.config['AUTH_SESSION_COOKIE_NAME']
    return RequestContext(session_cookie=request.cookies.get(cookie_name),
                          ip_address=request.remote_addr)


def set_cookies(response: Response, data: dict) -> None:
    """
    Update a :class:`.Response` with cookies in controller data.

    Controllers seeking to update cookies must include a 'cookies' key in
    their response data. A value of ``None`` clears the cookie.
    """
    cookies = data.pop('cookies', None)
    if cookies is None:
        return None
    for cookie_key, cookie_value in cookies.items():
        cookie_name = current_app.config[f'{cookie_key.upper()}_NAME']
        params: dict = dict(path='/', httponly=True, samesite='Strict',
                            secure=current_app.config[
                                'AUTH_SESSION_COOKIE_SECURE'])
        if cookie_value is None:
            logger.debug('Unset cookie %s', cookie_name)
            response.delete_cookie(cookie_name, **params)
            continue
        # No max_age: the session store decides when the session ends.
        logger.debug('Set cookie %s', cookie_name)
        response.set_cookie(cookie_name, cookie_value, **params)


def _respond(data: dict, code: int, headers: dict) -> Response:
    """Render controller data as JSON, setting any cookies it carries."""
    cookies = {'cookies': data.pop('cookies', None)}
    response: Response = make_response(jsonify(data), code, headers)
    set_cookies(response, cookies)
    return response


@blueprint.after_request
def apply_response_headers(response: Response) -> Response:
    """Prevent UI redress attacks."""
    response.headers['Content-Security-Policy'] = "frame-ancestors 'none'"
    response.headers['X-Frame-Options'] = 'DENY'
    return response


@blueprint.route('/sign-up', methods=['GET', 'POST'])
@anonymous_only
def sign_up() -> Response:
    """Register an account with an e-mail address and a role."""
    return _respond(*authentication.sign_up(request.method, request.form,
                                            _context()))


@blueprint.route('/sign-in', methods=['GET', 'POST'])
@anonymous_only
def sign_in() -> Response:
    """Ask for a one-time code for an existing account."""
    return _respond(*authentication.sign_in(request.method, request.form,
                                            _context()))


@blueprint.route('/verify', methods=['GET', 'POST'])
@anonymous_only
def verify() -> Response:
    """Submit a one-time code. Sets the session cookie on success."""
    return _respond(*authentication.submit_code(request.method, request.form,
                                                _context()))


@blueprint.route('/resend', methods=['POST'])
@anonymous_only
def resend() -> Response:
    """Ask for a fresh one-time code."""
    return _respond(*authentication.resend_code(request.method, request.form,
                                                _context()))


@blueprint.route('/sign-out', methods=['GET', 'POST'])
def sign_out() -> Response:
    """Close the session, and clear the session cookie."""
    return _respond(*authentication.sign_out(_context()))


@blueprint.route('/me', methods=['GET'])
def me() -> Response:
    """Describe the signed-in account."""
    return _respond(*authentication.who_am_i(_context()))


@blueprint.route('/api/user-role', methods=['GET'])
def user_role() -> Response:
    """Tell whether the signed-in account is a student account."""
    return _respond(*authentication.user_role(_context()))


@blueprint.route('/', methods=['GET'])
@role_required(domain.Role.STANDARD)
def default_landing() -> Response:
    """Landing surface for standard accounts."""
    return _landing(domain.RedirectTarget.DEFAULT_LANDING)


@blueprint.route('/student', methods=['GET'])
@role_required(domain.Role.STUDENT)
def student_landing() -> Response:
    """Landing surface for student accounts."""
    return _landing(domain.RedirectTarget.STUDENT_LANDING)


def _landing(target: domain.RedirectTarget) -> Response:
    data: Any = {'landing': target.value,
                 'account': domain.to_dict(request.auth)}
    return make_response(jsonify(data), 200)


@blueprint.route('/auth_status', methods=['GET'])
@authenticated_only
def auth_status() -> Response:
    """Get a 200 if the request carries a live session."""
    return make_response(jsonify({'authenticated': True}), 200)
