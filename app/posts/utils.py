# Standard library imports
import os
from datetime import datetime

# Third-party imports
import bleach
import markdown2
import sqlalchemy as sa
from flask import current_app

# Local application imports
from app import db


def create_file_name(original_filename, now=None):
    """
    Build the stored name for an uploaded image.

    Args:
        original_filename (str): The filename supplied by the client.
        now (datetime): Upload time; defaults to the current local time.

    Returns:
        str: ``YYYYmmddHHMMSS_<filename>``, e.g. ``20240102030405_cat.png``.

    Only directory components are removed from the client's name; spaces and
    non-ASCII characters are kept. Storage paths are checked separately by
    ``validate_secure_path``.
    """
    now = now or datetime.now()
    filename = os.path.basename(original_filename.replace('\\', '/'))
    return f"{now.strftime('%Y%m%d%H%M%S')}_{filename}"


def allowed_image_file(filename):
    """Check if filename has an allowed image extension"""
    if not filename or '.' not in filename:
        return False

    ext = filename.rsplit('.', 1)[1].lower()
    allowed_types = current_app.config.get('IMAGE_ALLOWED_TYPES', ['jpg', 'jpeg', 'png', 'gif'])
    return ext in allowed_types


def sanitize_html_content(html_content):
    """
    Sanitize HTML content to prevent XSS while allowing safe formatting.

    Args:
        html_content (str): Raw HTML content to sanitize.

    Returns:
        str: Sanitized HTML content safe for rendering.
    """
    allowed_tags = [
        'p', 'br', 'strong', 'em', 'b', 'i', 'u', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
        'ul', 'ol', 'li', 'a', 'blockquote', 'code', 'pre', 'table', 'thead', 'tbody',
        'tr', 'th', 'td', 'hr'
    ]
    allowed_attributes = {
        'a': ['href', 'title'],
    }
    return bleach.clean(html_content, tags=allowed_tags, attributes=allowed_attributes)


def render_body(text):
    """Render a Markdown post body to sanitized HTML."""
    if not text:
        return ''
    html = markdown2.markdown(text, extras=['fenced-code-blocks', 'tables', 'code-friendly'])
    return sanitize_html_content(html)


def find_image_inconsistencies(storage):
    """
    Compare post rows against the files in image storage.

    Args:
        storage: Image storage holding the post images.

    Returns:
        tuple: (posts whose image file is missing, stored filenames no post references)
    """
    from app.models import Post

    prefix = current_app.config['POST_IMAGE_PREFIX']
    posts = db.session.scalars(
        sa.select(Post).where(Post.image.is_not(None)).order_by(Post.id)
    ).all()

    missing = [post for post in posts if not storage.exists(post.image_path)]
    referenced = {post.image for post in posts}
    orphaned = [name for name in storage.list_files(prefix) if name not in referenced]

    return missing, orphaned
