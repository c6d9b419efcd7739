"""Application factory for the vault auth app."""

import logging

from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException, Forbidden, Unauthorized, \
    BadRequest, MethodNotAllowed, InternalServerError, NotFound

from .auth import Auth
from .routes import ui
from .services import directory
from .services.directory import util


def create_web_app() -> Flask:
    """Initialize and configure the vault auth application."""
    app = Flask('vaultauth')
    app.config.from_pyfile('config.py')
    logging.getLogger('vaultauth').setLevel(int(app.config['LOGLEVEL']))

    directory.init_app(app)
    Auth(app)   # Puts the signed-in account on request.auth.
    app.register_blueprint(ui.blueprint)

    if app.config['CREATE_DB']:
        with app.app_context():
            util.create_all()

    register_error_handlers(app)
    return app


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the Flask app."""
    app.errorhandler(Forbidden)(jsonify_exception)
    app.errorhandler(Unauthorized)(jsonify_exception)
    app.errorhandler(BadRequest)(jsonify_exception)
    app.errorhandler(InternalServerError)(jsonify_exception)
    app.errorhandler(NotFound)(jsonify_exception)
    app.errorhandler(MethodNotAllowed)(jsonify_exception)


def jsonify_exception(error: HTTPException) -> Response:
    """Render exceptions as JSON."""
    exc_resp = error.get_response()
    response: Response = jsonify(reason=error.description)
    response.status_code = exc_resp.status_code
    return response
