"""
Route guards based on the signed-in account.

These rely on :class:`.auth.Auth` having put the account (or ``None``) on
``request.auth``.

.. code-block:: python

   @blueprint.route('/student', methods=['GET'])
   @role_required(domain.Role.STUDENT)
   def student_landing() -> Response:
       ...

"""

from typing import Any, Callable
from functools import wraps
from http import HTTPStatus as status

from flask import request, current_app, make_response, redirect

from . import domain


def _landing_url(account: domain.Account) -> str:
    if domain.redirect_target(account.role) \
            is domain.RedirectTarget.STUDENT_LANDING:
        return str(current_app.config['STUDENT_LANDING_URL'])
    return str(current_app.config['DEFAULT_LANDING_URL'])


def _see_other(location: str) -> Any:
    return make_response(redirect(location, code=status.SEE_OTHER))


def authenticated_only(func: Callable) -> Callable:
    """Send anonymous callers to the sign-in surface."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if request.auth is None:
            return _see_other(current_app.config['SIGN_IN_URL'])
        return func(*args, **kwargs)
    return wrapper


def role_required(role: domain.Role) -> Callable:
    """
    Generate a guard that admits only accounts with ``role``.

    Anonymous callers are sent to the sign-in surface; accounts with the
    other role are sent to their own landing surface.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            account = request.auth
            if account is None:
                return _see_other(current_app.config['SIGN_IN_URL'])
            if account.role is not role:
                return _see_other(_landing_url(account))
            return func(*args, **kwargs)
        return wrapper
    return decorator


def anonymous_only(func: Callable) -> Callable:
    """Send signed-in callers to their landing surface."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if request.auth is not None:
            return _see_other(_landing_url(request.auth))
        return func(*args, **kwargs)
    return wrapper
