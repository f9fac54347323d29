"""Web Server Gateway Interface entry-point."""

import os
from typing import Optional

from flask import Flask

from hypercloud.factory import create_web_app

__flask_app__: Optional[Flask] = None


def application(environ, start_response):
    """WSGI application factory."""
    for key, value in environ.items():
        # In some deployment scenarios (e.g. uWSGI on k8s), uWSGI will pass in
        # the hostname as part of the request environ. This will usually just
        # be a container ID, which is not helpful for things like building
        # URLs. The public host is configured with SERVER_HOSTNAME.
        if key == 'HOSTNAME':
            continue
        # Only string values are passed on to the config.
        if type(value) is str:
            os.environ[key] = value
    global __flask_app__
    if __flask_app__ is None:
        __flask_app__ = create_web_app()
    return __flask_app__(environ, start_response)
