import pytest
from hypothesis import settings

from hypercloud.tests.util import make_app, temporary_db

# Password hashing is slow by design.
settings.register_profile('hypercloud', deadline=None, max_examples=20)
settings.load_profile('hypercloud')


@pytest.fixture()
def app():
    app = make_app()
    with temporary_db(app):
        yield app


@pytest.fixture()
def client(app):
    return app.test_client()
