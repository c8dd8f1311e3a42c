"""
Errors raised by the post write coordinator.

Each error carries a human-readable message suitable for flashing back to
the user alongside their original form input.
"""


class PostError(Exception):
    """Base class for failures of a post create, update or delete."""

    default_message = 'The post could not be saved.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class PostNotFoundError(PostError):
    default_message = 'Post not found.'


class PostForbiddenError(PostError):
    default_message = 'You can only update your own posts.'


class StorageWriteError(PostError):
    default_message = 'Failed to save the image file.'


class StorageDeleteError(PostError):
    default_message = 'Failed to delete the image file.'
