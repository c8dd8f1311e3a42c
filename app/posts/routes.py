# Post routes for the Post Board application
from flask import render_template, flash, redirect, url_for, request, current_app, abort, send_file
from flask_login import login_required, current_user
from flask_paginate import Pagination, get_page_parameter
from flask_wtf import FlaskForm
import sqlalchemy as sa
import sqlalchemy.orm as so

from app.posts import bp
from app import db
from app.models import Post, Comment
from app.audit import (
    audit_log_create, audit_log_update, audit_log_delete, audit_log_security_event,
    audit_log_file_operation, get_model_changes
)
from app.posts.errors import PostError, PostNotFoundError, PostForbiddenError
from app.posts.forms import PostForm, CreatePostForm, CommentForm
from app.posts.services import get_post_coordinator
from app.posts.storage import get_image_storage


@bp.route('/')
def index():
    """
    List posts, newest first, with their authors
    """
    page = request.args.get(get_page_parameter(), type=int, default=1)
    per_page = current_app.config.get('POSTS_PER_PAGE', 4)

    query = (
        sa.select(Post)
        .options(so.selectinload(Post.user))
        .order_by(Post.created_at.desc(), Post.id.desc())
    )
    posts = db.paginate(query, page=page, per_page=per_page, error_out=False)
    pagination = Pagination(page=page, per_page=per_page, total=posts.total,
                            record_name='posts', css_framework='bootstrap5')

    return render_template('posts/index.html', posts=posts.items, pagination=pagination)


@bp.route('/create')
@login_required
def create():
    """
    Show the form for writing a new post
    """
    return render_template('posts/create.html', form=CreatePostForm())


@bp.route('/', methods=['POST'])
@login_required
def store():
    """
    Store a new post and its image
    """
    form = CreatePostForm()
    if not form.validate_on_submit():
        return render_template('posts/create.html', form=form)

    upload = form.uploaded_image()
    try:
        post = get_post_coordinator().create(form.text_fields(), upload, current_user.id)
    except PostError as e:
        current_app.logger.warning(f"Post creation failed for user {current_user.id}: {e.message}")
        flash(e.message, 'error')
        return render_template('posts/create.html', form=form)

    audit_log_create('Post', post.id, f'Created post: {post.title}')
    audit_log_file_operation('UPLOAD', post.image, f'Image for post {post.id}')

    flash('Post created.', 'success')
    return redirect(url_for('posts.show', post_id=post.id))


@bp.route('/<int:post_id>')
def show(post_id):
    """
    Display a single post with its comments
    """
    post = db.session.scalar(
        sa.select(Post).options(so.selectinload(Post.user)).where(Post.id == post_id)
    )
    if not post:
        current_app.logger.info(f"Post not found with ID: {post_id}")
        abort(404)

    comments = db.session.scalars(
        sa.select(Comment)
        .options(so.selectinload(Comment.user))
        .where(Comment.post_id == post.id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    ).all()

    return render_template('posts/show.html', post=post, comments=comments,
                           comment_form=CommentForm(), csrf_form=FlaskForm())


@bp.route('/<int:post_id>/edit')
@login_required
def edit(post_id):
    """
    Show the edit form for a post owned by the current user
    """
    post = db.session.get(Post, post_id)
    if not post:
        abort(404)

    if not current_user.can_update(post):
        flash(PostForbiddenError.default_message, 'error')
        return redirect(url_for('posts.show', post_id=post.id))

    form = PostForm(title=post.title, body=post.body)
    return render_template('posts/edit.html', form=form, post=post)


@bp.route('/<int:post_id>/edit', methods=['POST'])
@login_required
def update(post_id):
    """
    Update a post, replacing its image when a new one is uploaded
    """
    post = db.session.get(Post, post_id)
    if not post:
        abort(404)

    form = PostForm()
    if not form.validate_on_submit():
        return render_template('posts/edit.html', form=form, post=post)

    fields = form.text_fields()
    upload = form.uploaded_image()
    changes = get_model_changes(post, fields)
    old_image = post.image

    try:
        post = get_post_coordinator().update(post_id, fields, upload, actor=current_user)
    except PostNotFoundError:
        abort(404)
    except PostForbiddenError as e:
        audit_log_security_event('ACCESS_DENIED', f'Attempted to update post {post_id} owned by another member')
        flash(e.message, 'error')
        return redirect(url_for('posts.show', post_id=post_id))
    except PostError as e:
        current_app.logger.warning(f"Post update failed for post {post_id}: {e.message}")
        flash(e.message, 'error')
        return render_template('posts/edit.html', form=form, post=post)

    if upload is not None:
        changes['image'] = old_image
        audit_log_file_operation('REPLACE', post.image, f'Replaced {old_image} for post {post.id}')
    audit_log_update('Post', post.id, f'Updated post: {post.title}', changes)

    flash('Post updated.', 'success')
    return redirect(url_for('posts.show', post_id=post.id))


@bp.route('/<int:post_id>/delete', methods=['POST'])
@login_required
def destroy(post_id):
    """
    Delete a post together with its image
    """
    csrf_form = FlaskForm()
    if not csrf_form.validate_on_submit():
        flash('Security validation failed.', 'error')
        return redirect(url_for('posts.show', post_id=post_id))

    post = db.session.get(Post, post_id)
    if not post:
        abort(404)
    post_info = f'{post.title} (ID: {post.id})'
    image = post.image

    try:
        get_post_coordinator().delete(post_id, actor=current_user)
    except PostNotFoundError:
        abort(404)
    except PostForbiddenError as e:
        audit_log_security_event('ACCESS_DENIED', f'Attempted to delete post {post_id} owned by another member')
        flash(e.message, 'error')
        return redirect(url_for('posts.show', post_id=post_id))
    except PostError as e:
        current_app.logger.warning(f"Post deletion failed for post {post_id}: {e.message}")
        flash(e.message, 'error')
        return redirect(url_for('posts.show', post_id=post_id))

    audit_log_delete('Post', post_id, f'Deleted post: {post_info}')
    if image:
        audit_log_file_operation('DELETE', image, f'Image for deleted post {post_id}')

    flash('Post deleted.', 'success')
    return redirect(url_for('posts.index'))


@bp.route('/<int:post_id>/comments', methods=['POST'])
@login_required
def add_comment(post_id):
    """
    Add a comment to a post
    """
    post = db.session.get(Post, post_id)
    if not post:
        abort(404)

    form = CommentForm()
    if form.validate_on_submit():
        comment = Comment(body=form.body.data, post_id=post.id, user_id=current_user.id)
        db.session.add(comment)
        db.session.commit()
        audit_log_create('Comment', comment.id, f'Commented on post {post.id}')
        flash('Comment added.', 'success')
    else:
        for error in form.body.errors:
            flash(f'Comment: {error}', 'error')

    return redirect(url_for('posts.show', post_id=post.id))


@bp.route('/images/<filename>')
def image(filename):
    """
    Serve a stored post image from secure storage
    """
    storage = get_image_storage()
    relative_path = f"{current_app.config['POST_IMAGE_PREFIX']}/{filename}"
    if not storage.exists(relative_path):
        current_app.logger.warning(f"Image file not found: {relative_path}")
        abort(404)

    return send_file(storage.absolute_path(relative_path))
