"""Controllers for public user information."""

from typing import Optional, Tuple
from http import HTTPStatus as status
import logging

from werkzeug.datastructures import MultiDict
from retry import retry

from .. import domain, exceptions
from ..services import directory
from .forms import UsernameForm, validated

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]


def get_user(username: str) -> ResponseData:
    """Get the public details of the user with ``username``."""
    form = validated(UsernameForm, MultiDict({'username': username}))
    record = _get_user(form.username.data)
    if record is None:
        raise exceptions.NotFoundError('User not found', 'notFound')
    data = {
        'username': record.username,
        'createdAt': record.created_at.isoformat()
        if record.created_at else None
    }
    return data, status.OK, {}


@retry(exceptions.Unavailable, tries=3, delay=0.5, backoff=2)
def _get_user(username: str) -> Optional[domain.UserRecord]:
    return directory.get_by_username(username)
