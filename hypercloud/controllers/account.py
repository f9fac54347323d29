"""Controllers for the signed-in user's own account."""

from typing import Optional, Tuple
from http import HTTPStatus as status
import logging

from werkzeug.datastructures import MultiDict
from retry import retry

from .. import domain, exceptions, tokens
from ..services import directory, proofs
from .forms import AccountForm, validated

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


def _require_session(session: Optional[tokens.Verification]) -> tokens.Valid:
    if not isinstance(session, tokens.Valid):
        logger.debug('No valid session: %s', session)
        raise exceptions.unauthorized()
    return session


def _get_record(session: tokens.Valid) -> domain.UserRecord:
    record = _get_user(session.user_id)
    if record is None:
        logger.error('Session names user %s, who has no record',
                     session.user_id)
        raise exceptions.InternalError(tag='userRecordNotFound')
    return record


def get_account(session: Optional[tokens.Verification]) -> ResponseData:
    """
    Get the signed-in user's account details.

    Raises
    ------
    :class:`.AuthError`
        If there is no valid session.
    :class:`.InternalError`
        If the session names a user with no record.

    """
    record = _get_record(_require_session(session))
    data = {
        'email': record.email,
        'username': record.username,
        'profileURL': record.profile_url,
        'profileVerifyToken': record.profile_verify_token
    }
    return data, status.OK, {}


def update_account(session: Optional[tokens.Verification],
                   params: MultiDict) -> ResponseData:
    """
    Update the signed-in user's account settings.

    Changing ``profileURL`` issues a new profile proof and marks the profile
    as unverified.
    """
    session = _require_session(session)
    form = validated(AccountForm, params)
    record = _get_record(session)

    profile_url = form.profile_url
    if profile_url is not None and profile_url != record.profile_url:
        logger.debug('Profile URL changed for user %s', record.user_id)
        record = record._replace(profile_url=profile_url,
                                 is_profile_dat_verified=False)
        record = record._replace(profile_verify_token=proofs.generate(record))
    directory.put(record)
    return {}, status.OK, {}


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _get_user(user_id: str) -> Optional[domain.UserRecord]:
    return directory.get_by_id(user_id)
