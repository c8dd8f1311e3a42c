"""
Integration tests for the posts blueprint routes.
"""
import io
import pytest
import sqlalchemy as sa
from urllib.parse import quote
from werkzeug.datastructures import FileStorage

from app.models import Post, Comment
from app.posts.storage import LocalImageStorage
from tests.fixtures.factories import PostFactory, CommentFactory


def post_form(title='Cat', body='A **cat**.', filename='cat.png', data=b'image bytes'):
    form = {'title': title, 'body': body}
    if filename:
        form['image'] = (io.BytesIO(data), filename)
    return form


@pytest.mark.integration
class TestPostPublicRoutes:

    def test_index_lists_posts_newest_first(self, client, db_session, test_member):
        PostFactory.create(user=test_member, title='Older post')
        PostFactory.create(user=test_member, title='Newer post')

        response = client.get('/posts/')

        assert response.status_code == 200
        assert response.data.index(b'Newer post') < response.data.index(b'Older post')
        assert test_member.name.encode() in response.data

    def test_home_page_is_post_index(self, client, db_session, test_member):
        PostFactory.create(user=test_member, title='Front page post')

        response = client.get('/')

        assert response.status_code == 200
        assert b'Front page post' in response.data

    def test_index_is_paginated(self, app, client, db_session, test_member):
        for n in range(app.config['POSTS_PER_PAGE'] + 1):
            PostFactory.create(user=test_member, title=f'Paged post {n}')

        first_page = client.get('/posts/')
        second_page = client.get('/posts/?page=2')

        assert b'Paged post 0' not in first_page.data
        assert b'Paged post 4' in first_page.data
        assert b'Paged post 0' in second_page.data

    def test_show_post_with_comments(self, client, db_session, stored_post, other_member):
        CommentFactory.create(post=stored_post, user=other_member, body='Lovely photo')

        response = client.get(f'/posts/{stored_post.id}')

        assert response.status_code == 200
        assert stored_post.title.encode() in response.data
        assert b'Lovely photo' in response.data
        assert other_member.name.encode() in response.data

    def test_show_missing_post_returns_404(self, client, db_session):
        response = client.get('/posts/9999')
        assert response.status_code == 404

    def test_serves_stored_image(self, client, db_session, stored_post):
        response = client.get(f'/posts/images/{stored_post.image}')

        assert response.status_code == 200
        assert response.data == b'original image'

    def test_serves_non_ascii_image_with_image_mimetype(self, app, client, db_session, test_member, image_storage):
        post = PostFactory.create(user=test_member, image='20240101000000_写真.png')
        image_storage.put_file_as(app.config['POST_IMAGE_PREFIX'],
                                  FileStorage(stream=io.BytesIO(b'photo'), filename=post.image),
                                  post.image)

        response = client.get(f'/posts/images/{quote(post.image)}')

        assert response.status_code == 200
        assert response.mimetype == 'image/png'
        assert response.data == b'photo'

    def test_missing_image_returns_404(self, client, db_session):
        response = client.get('/posts/images/nothing.png')
        assert response.status_code == 404


@pytest.mark.integration
class TestPostCreateRoutes:

    def test_create_requires_login(self, client):
        response = client.get('/posts/create')
        assert response.status_code == 302
        assert '/members/login' in response.location

    def test_create_form_loads(self, authenticated_client):
        response = authenticated_client.get('/posts/create')
        assert response.status_code == 200
        assert b'multipart/form-data' in response.data

    def test_store_creates_post_and_image(self, authenticated_client, db_session, test_member, image_storage):
        response = authenticated_client.post('/posts/', data=post_form(),
                                             content_type='multipart/form-data')

        assert response.status_code == 302
        post = db_session.scalar(sa.select(Post))
        assert response.location.endswith(f'/posts/{post.id}')
        assert post.user_id == test_member.id
        assert post.image.endswith('_cat.png')
        assert image_storage.exists(post.image_path)

    def test_store_without_image_is_rejected(self, authenticated_client, db_session):
        response = authenticated_client.post('/posts/', data=post_form(filename=None),
                                             content_type='multipart/form-data')

        assert response.status_code == 200
        assert b'An image is required.' in response.data
        assert db_session.scalar(sa.select(sa.func.count(Post.id))) == 0

    def test_store_reports_storage_failure_and_keeps_input(self, authenticated_client, db_session, monkeypatch):
        monkeypatch.setattr(LocalImageStorage, 'put_file_as', lambda self, prefix, file, name: False)

        response = authenticated_client.post('/posts/', data=post_form(title='Keep this title'),
                                             content_type='multipart/form-data')

        assert response.status_code == 200
        assert b'Failed to save the image file.' in response.data
        assert b'Keep this title' in response.data
        assert db_session.scalar(sa.select(sa.func.count(Post.id))) == 0


@pytest.mark.integration
class TestPostUpdateRoutes:

    def test_edit_form_prefilled_for_owner(self, authenticated_client, stored_post):
        response = authenticated_client.get(f'/posts/{stored_post.id}/edit')

        assert response.status_code == 200
        assert stored_post.title.encode() in response.data

    def test_edit_redirects_non_owner(self, other_client, stored_post):
        response = other_client.get(f'/posts/{stored_post.id}/edit', follow_redirects=True)

        assert b'You can only update your own posts.' in response.data

    def test_update_text_only_keeps_image(self, authenticated_client, db_session, stored_post, image_storage):
        original_image = stored_post.image

        response = authenticated_client.post(f'/posts/{stored_post.id}/edit',
                                             data=post_form(title='Renamed', filename=None),
                                             content_type='multipart/form-data')

        assert response.status_code == 302
        db_session.expire_all()
        post = db_session.get(Post, stored_post.id)
        assert post.title == 'Renamed'
        assert post.image == original_image
        assert image_storage.exists(post.image_path)

    def test_update_replaces_image(self, authenticated_client, db_session, stored_post, image_storage):
        old_path = stored_post.image_path

        response = authenticated_client.post(f'/posts/{stored_post.id}/edit',
                                             data=post_form(filename='dog.png', data=b'dog'),
                                             content_type='multipart/form-data')

        assert response.status_code == 302
        db_session.expire_all()
        post = db_session.get(Post, stored_post.id)
        assert post.image.endswith('_dog.png')
        assert image_storage.exists(post.image_path)
        assert not image_storage.exists(old_path)

    def test_update_by_non_owner_is_forbidden(self, other_client, db_session, stored_post):
        response = other_client.post(f'/posts/{stored_post.id}/edit',
                                     data=post_form(title='Hijacked', filename=None),
                                     content_type='multipart/form-data', follow_redirects=True)

        assert b'You can only update your own posts.' in response.data
        db_session.expire_all()
        assert db_session.get(Post, stored_post.id).title != 'Hijacked'

    def test_update_reports_failed_old_image_delete(self, authenticated_client, db_session, stored_post,
                                                   image_storage, monkeypatch):
        old_path = stored_post.image_path
        original_image = stored_post.image
        real_delete = LocalImageStorage.delete

        def refuse_old_image(self, path):
            if path == old_path:
                return False
            return real_delete(self, path)

        monkeypatch.setattr(LocalImageStorage, 'delete', refuse_old_image)

        response = authenticated_client.post(f'/posts/{stored_post.id}/edit',
                                             data=post_form(title='Not saved', filename='dog.png'),
                                             content_type='multipart/form-data')

        assert response.status_code == 200
        assert b'Failed to delete the image file.' in response.data
        db_session.expire_all()
        post = db_session.get(Post, stored_post.id)
        assert post.image == original_image
        assert post.title != 'Not saved'
        assert image_storage.list_files('images/posts') == [original_image]

    def test_update_missing_post_returns_404(self, authenticated_client, db_session):
        response = authenticated_client.post('/posts/9999/edit', data=post_form(filename=None),
                                             content_type='multipart/form-data')
        assert response.status_code == 404


@pytest.mark.integration
class TestPostDeleteRoutes:

    def test_delete_removes_post_and_image(self, authenticated_client, db_session, stored_post, image_storage):
        post_id = stored_post.id
        image_path = stored_post.image_path

        response = authenticated_client.post(f'/posts/{post_id}/delete', follow_redirects=True)

        assert b'Post deleted.' in response.data
        db_session.expire_all()
        assert db_session.get(Post, post_id) is None
        assert not image_storage.exists(image_path)

    def test_delete_reports_failure_and_keeps_post(self, authenticated_client, db_session, stored_post,
                                                  image_storage, monkeypatch):
        monkeypatch.setattr(LocalImageStorage, 'delete', lambda self, path: False)

        response = authenticated_client.post(f'/posts/{stored_post.id}/delete', follow_redirects=True)

        assert b'Failed to delete the image file.' in response.data
        db_session.expire_all()
        assert db_session.get(Post, stored_post.id) is not None
        assert image_storage.exists(stored_post.image_path)

    def test_delete_by_non_owner_is_forbidden(self, other_client, db_session, stored_post, image_storage):
        response = other_client.post(f'/posts/{stored_post.id}/delete', follow_redirects=True)

        assert b'You can only delete your own posts.' in response.data
        db_session.expire_all()
        assert db_session.get(Post, stored_post.id) is not None

    def test_delete_requires_login(self, client, db_session, stored_post):
        response = client.post(f'/posts/{stored_post.id}/delete')
        assert response.status_code == 302
        assert '/members/login' in response.location


@pytest.mark.integration
class TestCommentRoutes:

    def test_add_comment(self, authenticated_client, db_session, stored_post, test_member):
        response = authenticated_client.post(f'/posts/{stored_post.id}/comments',
                                             data={'body': 'Nice one'}, follow_redirects=True)

        assert b'Comment added.' in response.data
        comment = db_session.scalar(sa.select(Comment))
        assert comment.body == 'Nice one'
        assert comment.user_id == test_member.id

    def test_empty_comment_rejected(self, authenticated_client, db_session, stored_post):
        authenticated_client.post(f'/posts/{stored_post.id}/comments', data={'body': ''})

        assert db_session.scalar(sa.select(sa.func.count(Comment.id))) == 0

    def test_comment_on_missing_post_returns_404(self, authenticated_client, db_session):
        response = authenticated_client.post('/posts/9999/comments', data={'body': 'Hello'})
        assert response.status_code == 404


@pytest.mark.integration
class TestPostBlueprintRegistration:

    def test_post_routes_registered(self, app):
        endpoints = {rule.endpoint for rule in app.url_map.iter_rules()}

        for endpoint in ['posts.index', 'posts.create', 'posts.store', 'posts.show', 'posts.edit',
                         'posts.update', 'posts.destroy', 'posts.add_comment', 'posts.image', 'index']:
            assert endpoint in endpoints
