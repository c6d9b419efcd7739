"""
Controllers for the passwordless sign-up and sign-in flow.

A user registers or signs in with an e-mail address, and is mailed a one-time
code. The response carries a correlation token (the account ID), which is
sent back along with the code. When the code verifies a session is opened in
the distributed session store, and its cookie is handed to the route, which
sets it on the redirect to the landing surface for the account's role.

Controllers never touch the Flask request directly. The inbound session
cookie and client address arrive in a :class:`.RequestContext`.
"""

from typing import Any, Dict, NamedTuple, Optional, Tuple
from http import HTTPStatus as status
import logging

from flask import current_app
from werkzeug.datastructures import MultiDict

from .. import domain
from ..exceptions import UnknownAccount
from ..flow import AuthFlow, ErrorKind, FlowResult, FlowState
from ..otp import OTPIssuer
from ..registry import AccountRegistry
from ..services.directory import current_directory
from ..services.directory.exceptions import Unavailable
from ..sessions import SessionManager
from .forms import SignUpForm, SignInForm, CodeForm, ResendForm

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


class RequestContext(NamedTuple):
    """What a controller needs to know about the inbound request."""

    session_cookie: Optional[str] = None
    ip_address: Optional[str] = None


STATUS_CODES = {
    ErrorKind.DUPLICATE_ACCOUNT: status.CONFLICT,
    ErrorKind.UNKNOWN_ACCOUNT: status.NOT_FOUND,
    ErrorKind.INVALID_OR_EXPIRED_CODE: status.BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED: status.UNAUTHORIZED,
    ErrorKind.RESEND_THROTTLED: status.TOO_MANY_REQUESTS,
    ErrorKind.DELIVERY_FAILED: status.SERVICE_UNAVAILABLE,
    ErrorKind.SESSION_ESTABLISH_FAILED: status.INTERNAL_SERVER_ERROR,
    ErrorKind.DIRECTORY_UNAVAILABLE: status.SERVICE_UNAVAILABLE
}

MESSAGES = {
    ErrorKind.DUPLICATE_ACCOUNT: 'An account with this e-mail address'
                                 ' already exists.',
    ErrorKind.UNKNOWN_ACCOUNT: 'No account is registered with this e-mail'
                               ' address.',
    ErrorKind.INVALID_OR_EXPIRED_CODE: 'Invalid or expired code.',
    ErrorKind.UNAUTHENTICATED: 'You are not signed in.',
    ErrorKind.RESEND_THROTTLED: 'A code was sent recently. Please wait'
                                ' before asking for another one.',
    ErrorKind.DELIVERY_FAILED: 'We could not send you a code. Please try'
                               ' again later.',
    ErrorKind.DIRECTORY_UNAVAILABLE: 'The service is temporarily'
                                     ' unavailable. Please try again later.',
    ErrorKind.SESSION_ESTABLISH_FAILED: 'We could not sign you in. Please'
                                        ' try again.'
}


def _components() -> Tuple[AccountRegistry, OTPIssuer, SessionManager]:
    config = current_app.config
    directory = current_directory()
    registry = AccountRegistry(directory,
                               avatar_ref=config['AVATAR_PLACEHOLDER_URL'])
    otp = OTPIssuer(directory,
                    resend_interval=int(config['OTP_RESEND_INTERVAL']),
                    max_attempts=int(config['OTP_MAX_ATTEMPTS']),
                    length=int(config['OTP_LENGTH']))
    return registry, otp, SessionManager(directory)


def _landing_url(target: domain.RedirectTarget) -> str:
    if target is domain.RedirectTarget.STUDENT_LANDING:
        return str(current_app.config['STUDENT_LANDING_URL'])
    return str(current_app.config['DEFAULT_LANDING_URL'])


def _error(kind: ErrorKind, **extra: Any) -> ResponseData:
    data: Dict[str, Any] = {'error': kind.value, 'message': MESSAGES[kind]}
    data.update(extra)
    return data, STATUS_CODES[kind], {}


def _form_error(form: Any) -> ResponseData:
    logger.debug('Form data is not valid: %s', form.errors)
    return {'errors': form.errors}, status.BAD_REQUEST, {}


def _fields(form: Any) -> ResponseData:
    return {'fields': [field.name for field in form]}, status.OK, {}


def _respond(result: FlowResult) -> ResponseData:
    """Translate the outcome of a flow operation into response data."""
    data: Dict[str, Any] = {'state': result.state.value,
                            'account_id': result.account_id}
    if result.state is FlowState.AUTHENTICATED:
        assert result.redirect_target is not None
        data.update({
            'redirect_target': result.redirect_target.value,
            'cookies': {'auth_session_cookie': result.cookie}
        })
        location = _landing_url(result.redirect_target)
        return data, status.SEE_OTHER, {'Location': location}
    if result.error is not None:
        return _error(result.error, **data)
    return data, status.OK, {}


def sign_up(method: str, form_data: MultiDict,
            ctx: RequestContext) -> ResponseData:
    """
    Register a new account, and send it a one-time code.

    Parameters
    ----------
    method : str
        ``GET`` describes the form, ``POST`` submits it.
    form_data : MultiDict
        Should include ``email``, ``full_name`` and ``role``.
    ctx : :class:`.RequestContext`

    Returns
    -------
    dict
        Response data, including the ``account_id`` to send back with the
        code.
    int
        Status code. 200 if a code was sent.
    dict
        Headers to add to the response.

    """
    if method == 'GET':
        return _fields(SignUpForm())

    logger.debug('Sign-up form submitted from %s', ctx.ip_address)
    form = SignUpForm(form_data)
    if not form.validate():
        return _form_error(form)
    flow = AuthFlow(*_components())
    result = flow.sign_up(form.email.data, form.full_name.data,
                          domain.Role(form.role.data))
    return _respond(result)


def sign_in(method: str, form_data: MultiDict,
            ctx: RequestContext) -> ResponseData:
    """
    Send a one-time code to an existing account.

    Parameters
    ----------
    method : str
    form_data : MultiDict
        Should include ``email``. Nothing else is read.
    ctx : :class:`.RequestContext`

    Returns
    -------
    dict
    int
        200 if a code was sent, 404 if the address is not registered.
    dict

    """
    if method == 'GET':
        return _fields(SignInForm())

    logger.debug('Sign-in form submitted from %s', ctx.ip_address)
    form = SignInForm(form_data)
    if not form.validate():
        return _form_error(form)
    flow = AuthFlow(*_components())
    return _respond(flow.sign_in(form.email.data))


def submit_code(method: str, form_data: MultiDict,
                ctx: RequestContext) -> ResponseData:
    """
    Verify a one-time code and open a session.

    Returns
    -------
    dict
        On success, includes a ``cookies`` entry for the route to set.
    int
        303 (See Other) to the landing surface on success.
    dict
        Includes ``Location`` on success.

    """
    if method == 'GET':
        return _fields(CodeForm())

    form = CodeForm(form_data)
    if not form.validate():
        if form.account_id.errors:
            return _form_error(form)
        # Malformed codes are reported like any other bad code.
        return _error(ErrorKind.INVALID_OR_EXPIRED_CODE,
                      state=FlowState.AWAITING_CODE.value,
                      account_id=form.account_id.data)
    flow = AuthFlow.resume(*_components(), account_id=form.account_id.data)
    result = flow.verify(form.code.data)
    if result.ok:
        logger.debug('Signed in %s from %s', result.account_id,
                     ctx.ip_address)
    return _respond(result)


def resend_code(method: str, form_data: MultiDict,
                ctx: RequestContext) -> ResponseData:
    """
    Send a fresh code, replacing the outstanding one.

    Parameters
    ----------
    method : str
    form_data : MultiDict
        Should include ``target``, either the account ID returned at sign-up
        or sign-in, or the e-mail address of the account.
    ctx : :class:`.RequestContext`

    """
    if method == 'GET':
        return _fields(ResendForm())

    form = ResendForm(form_data)
    if not form.validate():
        return _form_error(form)
    registry, otp, sessions = _components()
    try:
        account = registry.require(form.target.data.strip())
    except UnknownAccount:
        return _error(ErrorKind.UNKNOWN_ACCOUNT)
    except Unavailable:
        logger.error('Directory unavailable, could not resolve resend target')
        return _error(ErrorKind.DIRECTORY_UNAVAILABLE)
    flow = AuthFlow.resume(registry, otp, sessions, account.account_id)
    return _respond(flow.resend())


def sign_out(ctx: RequestContext) -> ResponseData:
    """
    Close the current session, if any, and send the user to sign in again.

    This always succeeds, and always clears the session cookie.

    Returns
    -------
    dict
    int
        303 (See Other).
    dict
        ``Location`` of the sign-in surface.

    """
    logger.debug('Request to sign out')
    SessionManager(current_directory()).revoke(ctx.session_cookie)
    data = {'cookies': {'auth_session_cookie': None}}
    location = current_app.config['SIGN_IN_URL']
    return data, status.SEE_OTHER, {'Location': location}


def who_am_i(ctx: RequestContext) -> ResponseData:
    """Get the account behind the session cookie, if there is one."""
    account = SessionManager(current_directory()).current(ctx.session_cookie)
    if account is None:
        return {'account': None}, status.OK, {}
    return {'account': domain.to_dict(account)}, status.OK, {}


def user_role(ctx: RequestContext) -> ResponseData:
    """Tell whether the signed-in account is a student account."""
    account = SessionManager(current_directory()).current(ctx.session_cookie)
    is_student = account is not None and account.is_student
    return {'is_student': is_student}, status.OK, {}
