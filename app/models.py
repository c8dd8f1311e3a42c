# Standard library imports
from datetime import datetime
from typing import Optional

# Third-party imports
import sqlalchemy as sa
import sqlalchemy.orm as so
from flask import current_app
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

# Local application imports
from app import db, login


class Member(UserMixin, db.Model):
    __tablename__ = 'member'
    id: so.Mapped[int] = so.mapped_column(primary_key=True)
    username: so.Mapped[str] = so.mapped_column(sa.String(64), index=True,
                                                unique=True)
    email: so.Mapped[str] = so.mapped_column(sa.String(120), index=True,
                                             unique=True)
    name: so.Mapped[str] = so.mapped_column(sa.String(128))
    password_hash: so.Mapped[Optional[str]] = so.mapped_column(sa.String(256))
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)
    last_login: so.Mapped[Optional[datetime]] = so.mapped_column(sa.DateTime, nullable=True)  # Last successful login

    posts: so.Mapped[list['Post']] = so.relationship('Post', back_populates='user')
    comments: so.Mapped[list['Comment']] = so.relationship('Comment', back_populates='user')

    def __repr__(self):
        return '<Member {}>'.format(self.username)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if self.password_hash is None or password is None:
            return False
        return check_password_hash(self.password_hash, password)

    def can_update(self, post):
        """Only the owner of a post may change it."""
        return post is not None and post.is_owned_by(self)

@login.user_loader
def load_user(id):
    return db.session.get(Member, int(id))

class Post(db.Model):
    __tablename__ = 'posts'
    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    title: so.Mapped[str] = so.mapped_column(sa.String(255), nullable=False)
    body: so.Mapped[str] = so.mapped_column(sa.Text, nullable=False)
    image: so.Mapped[Optional[str]] = so.mapped_column(sa.String(255), nullable=True)
    user_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('member.id'), index=True, nullable=False)
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)
    updated_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow,
                                                       onupdate=datetime.utcnow, nullable=False)

    user: so.Mapped['Member'] = so.relationship('Member', back_populates='posts')
    comments: so.Mapped[list['Comment']] = so.relationship(
        'Comment', back_populates='post', cascade='all, delete-orphan',
        order_by='Comment.created_at.desc()'
    )

    def __repr__(self):
        return f"<Post id={self.id}, title='{self.title}'>"

    def image_path_for(self, prefix):
        if not self.image:
            return None
        return f"{prefix}/{self.image}"

    @property
    def image_path(self):
        """Storage path of the image blob, relative to the storage root."""
        return self.image_path_for(current_app.config.get('POST_IMAGE_PREFIX', 'images/posts'))

    def is_owned_by(self, member):
        return member is not None and self.user_id == getattr(member, 'id', None)


class Comment(db.Model):
    __tablename__ = 'comments'
    id: so.Mapped[int] = so.mapped_column(sa.Integer, primary_key=True)
    body: so.Mapped[str] = so.mapped_column(sa.Text, nullable=False)
    post_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('posts.id', ondelete='CASCADE'),
                                               index=True, nullable=False)
    user_id: so.Mapped[int] = so.mapped_column(sa.Integer, sa.ForeignKey('member.id'), nullable=False)
    created_at: so.Mapped[datetime] = so.mapped_column(sa.DateTime, default=datetime.utcnow, nullable=False)

    post: so.Mapped['Post'] = so.relationship('Post', back_populates='comments')
    user: so.Mapped['Member'] = so.relationship('Member', back_populates='comments')

    def __repr__(self):
        return f"<Comment id={self.id}, post_id={self.post_id}>"
