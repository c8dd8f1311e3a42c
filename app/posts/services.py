"""
Post Write Coordinator.

A post row lives in the database while its image lives in file storage, and
the two have no shared transaction. Every mutating operation therefore runs
inside a database transaction whose commit is the last step: a storage
failure before the commit is turned into a rollback, so the row and its
image either change together or not at all.

Usage:
    coordinator = PostWriteCoordinator(db.session, get_image_storage())
    post = coordinator.create({'title': ..., 'body': ...}, upload, current_user.id)
"""
import logging
from datetime import datetime

from app.models import Post
from app.posts.errors import (
    PostNotFoundError, PostForbiddenError, StorageWriteError, StorageDeleteError
)
from app.posts.utils import create_file_name

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('title', 'body')


def owner_policy(member, post):
    """Default authorization: only the owner may change a post."""
    return member is not None and member.can_update(post)


class PostWriteCoordinator:
    def __init__(self, session, storage, policy=owner_policy, clock=datetime.now,
                 image_prefix='images/posts'):
        self.session = session
        self.storage = storage
        self.policy = policy
        self.clock = clock
        self.image_prefix = image_prefix

    def _image_path(self, name):
        return f"{self.image_prefix}/{name}"

    def _get_post(self, post_id):
        post = self.session.get(Post, post_id)
        if post is None:
            raise PostNotFoundError()
        return post

    def create(self, fields, upload, owner_id):
        """
        Insert a post and store its image.

        Args:
            fields (dict): Text fields (title, body).
            upload: Uploaded file with ``filename`` and ``save(path)``.
            owner_id (int): ID of the member creating the post.

        Returns:
            Post: The committed post.

        Raises:
            StorageWriteError: The image could not be stored; nothing was persisted.
        """
        post = Post(**{key: fields[key] for key in EDITABLE_FIELDS if key in fields})
        post.user_id = owner_id
        post.image = create_file_name(upload.filename, self.clock())

        try:
            self.session.add(post)
            self.session.flush()

            if not self.storage.put_file_as(self.image_prefix, upload, post.image):
                raise StorageWriteError()

            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.warning(f"Rolled back creation of post with image {post.image}")
            raise

        logger.info(f"Created post {post.id} with image {post.image}")
        return post

    def update(self, post_id, fields, upload=None, actor=None):
        """
        Update a post's text fields and optionally replace its image.

        Without an upload the image storage is never touched. With one, the
        new image is written before the old one is removed; if the old one
        cannot be removed the new one is deleted again and the row change is
        rolled back, leaving the original row and image in place.

        Raises:
            PostNotFoundError, PostForbiddenError, StorageWriteError, StorageDeleteError
        """
        post = self._get_post(post_id)
        if not self.policy(actor, post):
            raise PostForbiddenError()

        old_image_path = None
        if upload is not None:
            old_image_path = post.image_path_for(self.image_prefix)
            post.image = create_file_name(upload.filename, self.clock())

        for key in EDITABLE_FIELDS:
            if key in fields:
                setattr(post, key, fields[key])

        try:
            self.session.flush()

            if upload is not None:
                new_image_path = self._image_path(post.image)
                if not self.storage.put_file_as(self.image_prefix, upload, post.image):
                    raise StorageWriteError()

                # Same name means the write replaced the old file in place
                if old_image_path and old_image_path != new_image_path:
                    if not self.storage.delete(old_image_path):
                        if not self.storage.delete(new_image_path):
                            logger.error(f"Could not remove replacement image {new_image_path}")
                        raise StorageDeleteError()

            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.warning(f"Rolled back update of post {post_id}")
            raise

        logger.info(f"Updated post {post.id}")
        return post

    def delete(self, post_id, actor=None):
        """
        Delete a post row together with its image.

        When ``actor`` is given the authorization policy is applied first.

        Raises:
            PostNotFoundError, PostForbiddenError, StorageDeleteError
        """
        post = self._get_post(post_id)
        if actor is not None and not self.policy(actor, post):
            raise PostForbiddenError('You can only delete your own posts.')

        image_path = post.image_path_for(self.image_prefix)

        try:
            self.session.delete(post)
            self.session.flush()

            if image_path and not self.storage.delete(image_path):
                raise StorageDeleteError()

            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.warning(f"Rolled back deletion of post {post_id}")
            raise

        logger.info(f"Deleted post {post_id} and image {image_path}")


def get_post_coordinator():
    """Coordinator wired to the application's session and image storage."""
    from flask import current_app
    from app import db
    from app.posts.storage import get_image_storage

    return PostWriteCoordinator(
        db.session,
        get_image_storage(),
        image_prefix=current_app.config['POST_IMAGE_PREFIX'],
    )
