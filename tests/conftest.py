"""
Test configuration and fixtures for the Post Board application.
"""
import io
import os

# Set environment variables for testing before the config module is imported
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'

import pytest
from werkzeug.datastructures import FileStorage

from app import create_app, db
from app.posts.storage import LocalImageStorage
from tests.fixtures.factories import MemberFactory, PostFactory


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app('testing')

    with app.app_context():
        from app import models

        db.create_all()

        yield app

        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create test CLI runner."""
    return app.test_cli_runner()


@pytest.fixture
def db_session(app):
    """Create database session for testing."""
    with app.app_context():
        yield db.session

        # Clear all tables for clean state between tests
        try:
            db.session.rollback()
            for table in reversed(db.metadata.sorted_tables):
                db.session.execute(table.delete())
            db.session.commit()
        except Exception:
            db.session.rollback()
        finally:
            db.session.remove()


@pytest.fixture(autouse=True)
def image_storage(app, tmp_path, monkeypatch):
    """Point post image storage at a per-test directory."""
    storage_root = tmp_path / 'storage'
    storage_root.mkdir()
    monkeypatch.setitem(app.config, 'POSTS_STORAGE_PATH', str(storage_root))
    return LocalImageStorage(str(storage_root))


@pytest.fixture
def make_upload():
    """Build an uploaded file the way werkzeug hands it to a view."""
    def _make_upload(filename='cat.png', data=b'fake image bytes', content_type='image/png'):
        return FileStorage(stream=io.BytesIO(data), filename=filename, content_type=content_type)
    return _make_upload


class InterruptedStream(io.BytesIO):
    """Upload stream that hands out one chunk and then fails like a full disk."""

    def __init__(self, data):
        super().__init__(data)
        self.reads = 0

    def read(self, size=-1):
        self.reads += 1
        if self.reads > 1:
            raise OSError('No space left on device')
        return super().read(size)


@pytest.fixture
def make_interrupted_upload():
    """Build an upload whose stream breaks after the first chunk has been written."""
    def _make_interrupted_upload(filename='cat.png', data=b'partial image bytes' * 64):
        return FileStorage(stream=InterruptedStream(data), filename=filename, content_type='image/png')
    return _make_interrupted_upload


@pytest.fixture
def test_member(db_session):
    """Create a basic test member."""
    return MemberFactory.create(name='Test User', password='Testpassword123')


@pytest.fixture
def other_member(db_session):
    """Create a second member who owns nothing the test member does."""
    return MemberFactory.create(name='Other User', password='Otherpassword123')


@pytest.fixture
def stored_post(db_session, test_member, image_storage, app):
    """A post owned by test_member whose image file exists in storage."""
    post = PostFactory.create(user=test_member)
    image_storage.put_file_as(
        app.config['POST_IMAGE_PREFIX'],
        FileStorage(stream=io.BytesIO(b'original image'), filename=post.image),
        post.image
    )
    return post


@pytest.fixture
def authenticated_client(client, test_member):
    """Create an authenticated client session."""
    with client.session_transaction() as sess:
        sess['_user_id'] = str(test_member.id)
        sess['_fresh'] = True
    return client


@pytest.fixture
def other_client(client, other_member):
    """Client logged in as a member who does not own stored_post."""
    with client.session_transaction() as sess:
        sess['_user_id'] = str(other_member.id)
        sess['_fresh'] = True
    return client
