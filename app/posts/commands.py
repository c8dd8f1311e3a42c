import click
from flask.cli import AppGroup

from app.posts.storage import get_image_storage
from app.posts.utils import find_image_inconsistencies

posts_cli = AppGroup('posts', help='Post maintenance commands.')


@posts_cli.command('check-images')
def check_images():
    """Report posts without an image file and image files without a post."""
    missing, orphaned = find_image_inconsistencies(get_image_storage())

    for post in missing:
        click.echo(f"MISSING  post {post.id}: {post.image_path}")
    for name in orphaned:
        click.echo(f"ORPHANED {name}")

    if missing or orphaned:
        click.echo(f"{len(missing)} post(s) missing images, {len(orphaned)} orphaned file(s)")
        raise SystemExit(1)

    click.echo('All post images are consistent.')
