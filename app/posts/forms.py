# Third-party imports
from flask import current_app
from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired
from wtforms import StringField, SubmitField, TextAreaField
from wtforms.validators import DataRequired, Length, ValidationError

# Local application imports
from app.posts.utils import allowed_image_file


class PostForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(), Length(min=1, max=255)])
    body = TextAreaField('Body', validators=[DataRequired(), Length(min=1, max=10000)])
    image = FileField('Image')
    submit = SubmitField('Save')

    def validate_image(self, field):
        """Custom validation for image uploads using config values"""
        file = field.data
        if not file or not getattr(file, 'filename', None):
            return

        if '.' not in file.filename:
            raise ValidationError('Invalid file format.')
        if not allowed_image_file(file.filename):
            allowed_types = current_app.config.get('IMAGE_ALLOWED_TYPES', ['jpg', 'jpeg', 'png', 'gif'])
            allowed_str = ', '.join(allowed_types)
            raise ValidationError(f'Only {allowed_str} files are allowed!')

        max_size_mb = current_app.config.get('IMAGE_MAX_SIZE_MB', 5)
        file.stream.seek(0, 2)
        file_size = file.stream.tell()
        file.stream.seek(0)
        if file_size > max_size_mb * 1024 * 1024:
            raise ValidationError(f'Image is too large. Maximum size is {max_size_mb}MB.')

    def text_fields(self):
        return {'title': self.title.data.strip(), 'body': self.body.data}

    def uploaded_image(self):
        """The uploaded file, or None when the field was left empty."""
        file = self.image.data
        if file and getattr(file, 'filename', None):
            return file
        return None


class CreatePostForm(PostForm):
    image = FileField('Image', validators=[FileRequired('An image is required.')])


class CommentForm(FlaskForm):
    body = TextAreaField('Comment', validators=[DataRequired(), Length(min=1, max=2000)])
    submit = SubmitField('Post Comment')
