"""JSON API for account registration, login and settings."""

from typing import Optional, Tuple
from datetime import timedelta
from http import HTTPStatus as status
import logging

from flask import Blueprint, Response, current_app, jsonify, make_response, \
    request
from werkzeug.datastructures import MultiDict
from werkzeug.exceptions import HTTPException

from ..controllers import account, authentication, registration, users
from ..exceptions import AccountError, InternalError

logger = logging.getLogger(__name__)
blueprint = Blueprint('api', __name__, url_prefix='/v1')


def get_params() -> MultiDict:
    """
    Collect request parameters from a JSON body, a form, or the query string.

    Only string values are taken from a JSON body; anything else is treated
    as missing.
    """
    if request.is_json:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return MultiDict()
        return MultiDict([(key, value) for key, value in body.items()
                          if isinstance(value, str)])
    return MultiDict(request.values)


def set_cookies(response: Response, cookies: Optional[dict]) -> None:
    """
    Update a :class:`.Response` with cookies from controller data.

    Controllers seeking to update cookies must include a 'cookies' key in
    their response data, mapping a cookie key to ``(value, max_age)``.
    """
    if not cookies:
        return None
    for cookie_key, (cookie_value, expires) in cookies.items():
        cookie_name = current_app.config[f'{cookie_key.upper()}_NAME']
        max_age = timedelta(seconds=expires)
        logger.debug('Set cookie %s, max_age %s', cookie_name, max_age)
        params = dict(httponly=True)
        if current_app.config['AUTH_SESSION_COOKIE_SECURE']:
            # Lax, to allow reasonable links to authenticated views.
            params.update({'secure': True, 'samesite': 'Lax'})
        response.set_cookie(cookie_name, cookie_value, max_age=max_age,
                            **params)


def respond(result: Tuple[dict, int, dict]) -> Response:
    """Render a controller result as a JSON response."""
    data, code, headers = result
    cookies = data.pop('cookies', None)
    response = make_response(jsonify(data) if data else '', code, headers)
    set_cookies(response, cookies)
    return response


@blueprint.route('/register', methods=['GET'])
def registration_status() -> Response:
    """Whether registration is open."""
    return respond(registration.registration_status())


@blueprint.route('/register', methods=['POST'])
def register() -> Response:
    """Create an account."""
    return respond(registration.register(get_params()))


@blueprint.route('/verify', methods=['GET', 'POST'])
def verify() -> Response:
    """Verify an email address, and log in."""
    return respond(registration.verify(get_params()))


@blueprint.route('/login', methods=['POST'])
def login() -> Response:
    """Log in with a username and password."""
    return respond(authentication.login(get_params()))


@blueprint.route('/logout', methods=['GET', 'POST'])
def logout() -> Response:
    """Clear the session cookie."""
    return respond(authentication.logout())


@blueprint.route('/account', methods=['GET'])
def get_account() -> Response:
    """The signed-in user's account details."""
    return respond(account.get_account(request.auth))


@blueprint.route('/account', methods=['POST'])
def update_account() -> Response:
    """Change the signed-in user's account settings."""
    return respond(account.update_account(request.auth, get_params()))


@blueprint.route('/users/<string:username>', methods=['GET'])
def get_user(username: str) -> Response:
    """Public details of a user."""
    return respond(users.get_user(username))


@blueprint.errorhandler(AccountError)
def handle_account_error(error: AccountError) -> Response:
    """Render an account error as JSON."""
    if error.status_code >= status.INTERNAL_SERVER_ERROR:
        logger.error('Request failed: %s', error.tag)
    else:
        logger.debug('Request rejected: %s', error.tag)
    return make_response(jsonify(error.to_dict()), error.status_code)


@blueprint.errorhandler(HTTPException)
def handle_http_error(error: HTTPException) -> Response:
    """Render a protocol-level error as JSON."""
    return make_response(jsonify({'message': error.description}), error.code)


@blueprint.errorhandler(Exception)
def handle_unexpected_error(error: Exception) -> Response:
    """Log an unexpected failure, and hide its details from the caller."""
    logger.exception('Unhandled error: %s', error)
    return make_response(jsonify(InternalError().to_dict()),
                         status.INTERNAL_SERVER_ERROR)
