# Standard library imports
import re

# Third-party imports
import sqlalchemy as sa
from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, BooleanField, SubmitField
from wtforms.validators import (
    ValidationError, DataRequired, Email, EqualTo, Length
)

# Local application imports
from app import db
from app.models import Member

# Custom password validator for complexity requirements
class PasswordComplexity:
    """
    Custom WTForms validator for password complexity requirements.
    Requires at least 8 characters with uppercase, lowercase and a number.
    """
    def __init__(self, message=None):
        self.message = message or (
            'Password must be at least 8 characters long and contain: '
            'uppercase letter, lowercase letter and number'
        )

    def __call__(self, form, field):
        password = field.data
        if not password:
            return  # Let DataRequired handle empty passwords

        if len(password) < 8:
            raise ValidationError('Password must be at least 8 characters long')

        if not re.search(r'[A-Z]', password):
            raise ValidationError('Password must contain at least one uppercase letter')

        if not re.search(r'[a-z]', password):
            raise ValidationError('Password must contain at least one lowercase letter')

        if not re.search(r'\d', password):
            raise ValidationError('Password must contain at least one number')

class LoginForm(FlaskForm):
    username = StringField('Username', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])
    remember_me = BooleanField('Remember Me')
    submit = SubmitField('Sign In')

class RegistrationForm(FlaskForm):
    username = StringField('Username', validators=[DataRequired(), Length(min=1, max=64)])
    name = StringField('Name', validators=[DataRequired(), Length(min=1, max=128)])
    email = StringField('Email', validators=[DataRequired(), Email(), Length(max=120)])
    password = PasswordField('Password', validators=[DataRequired(message="A password is required"), PasswordComplexity(), EqualTo('password2', "Passwords must match.")])
    password2 = PasswordField('Repeat Password', validators=[DataRequired()])
    submit = SubmitField('Register')

    def validate_username(self, username):
        user = db.session.scalar(sa.select(Member).where(
            Member.username == username.data))
        if user is not None:
            raise ValidationError('That username is not available. Please use a different username.')

    def validate_email(self, email):
        user = db.session.scalar(sa.select(Member).where(
            Member.email == email.data))
        if user is not None:
            raise ValidationError('Please use a different email address.')
