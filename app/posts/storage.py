"""
Local filesystem storage for post images.

Files live below a root directory kept outside the web root. Failures are
reported as ``False`` rather than raised, so callers must check every
return value.
"""
import logging
import os
import uuid
from typing import List, Optional, Protocol

from flask import current_app

logger = logging.getLogger(__name__)


class ImageStorage(Protocol):
    def put_file_as(self, prefix: str, file, name: str) -> bool:
        ...

    def delete(self, path: str) -> bool:
        ...


def validate_secure_path(relative_path, base_path):
    """
    Validate that a relative storage path stays within the base directory.

    Args:
        relative_path (str): Path relative to the storage root, using '/' separators.
        base_path (str): The base directory path that files should be within.

    Returns:
        str: The validated full path if safe, None if unsafe.
    """
    if not relative_path or relative_path.startswith('/') or '\\' in relative_path:
        return None

    parts = relative_path.split('/')
    if any(part in ('', '.', '..') for part in parts):
        return None

    full_path = os.path.normpath(os.path.join(base_path, *parts))
    base = os.path.normpath(base_path)
    if os.path.commonpath([full_path, base]) != base:
        return None

    return full_path


class LocalImageStorage:
    def __init__(self, base_path: str):
        self.base_path = base_path

    def absolute_path(self, path: str) -> Optional[str]:
        return validate_secure_path(path, self.base_path)

    def exists(self, path: str) -> bool:
        full_path = self.absolute_path(path)
        return bool(full_path) and os.path.isfile(full_path)

    def put_file_as(self, prefix: str, file, name: str) -> bool:
        """
        Store an uploaded file as ``prefix/name``.

        The upload is written to a temporary file beside the target and moved
        into place only once it is complete. A failed write leaves any
        existing file at ``prefix/name`` untouched and no partial file behind.
        """
        full_path = self.absolute_path(f"{prefix}/{name}")
        if not full_path:
            logger.warning(f"Refusing to store image with unsafe name: {prefix}/{name}")
            return False

        temp_path = f"{full_path}.{uuid.uuid4().hex}.part"
        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            file.save(temp_path)
            os.replace(temp_path, full_path)
        except OSError as e:
            logger.error(f"Error saving image {prefix}/{name}: {str(e)}")
            self._discard(temp_path)
            return False

        logger.info(f"Stored image {prefix}/{name}")
        return True

    def _discard(self, temp_path):
        try:
            os.remove(temp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Could not remove partial upload {temp_path}: {str(e)}")

    def delete(self, path: str) -> bool:
        """Remove a stored file. A file that is already gone counts as deleted."""
        full_path = self.absolute_path(path)
        if not full_path:
            logger.warning(f"Refusing to delete image with unsafe path: {path}")
            return False

        try:
            os.remove(full_path)
        except FileNotFoundError:
            logger.warning(f"Image already absent on delete: {path}")
        except OSError as e:
            logger.error(f"Error deleting image {path}: {str(e)}")
            return False

        logger.info(f"Deleted image {path}")
        return True

    def list_files(self, prefix: str) -> List[str]:
        """Names of the files stored directly under a prefix."""
        directory = self.absolute_path(prefix)
        if not directory or not os.path.isdir(directory):
            return []
        return sorted(
            name for name in os.listdir(directory)
            if os.path.isfile(os.path.join(directory, name))
        )


def get_image_storage():
    """Storage rooted at the configured posts storage path."""
    return LocalImageStorage(current_app.config['POSTS_STORAGE_PATH'])
