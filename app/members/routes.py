# Member routes: registration, login and logout

from datetime import datetime
from flask import render_template, redirect, url_for, flash, request, current_app
from flask_login import login_user, logout_user, current_user, login_required
from urllib.parse import urlsplit
import sqlalchemy as sa
from app import db, limiter
from app.models import Member
from app.forms import LoginForm, RegistrationForm
from app.members import bp
from app.audit import audit_log_create, audit_log_authentication


@bp.route('/register', methods=['GET', 'POST'])
def register():
    """
    Self-service member registration
    """
    if current_user.is_authenticated:
        return redirect(url_for('posts.index'))

    form = RegistrationForm()
    if form.validate_on_submit():
        member = Member(
            username=form.username.data,
            name=form.name.data,
            email=form.email.data
        )
        member.set_password(form.password.data)
        db.session.add(member)
        db.session.commit()

        audit_log_create('Member', member.id, f'Registered member: {member.username}')
        audit_log_authentication('REGISTER', member.username, True)

        login_user(member)
        flash(f'Welcome, {member.name}!', 'success')
        return redirect(url_for('posts.index'))

    return render_template('members/register.html', form=form)


@bp.route('/login', methods=['GET', 'POST'])
@limiter.limit("10 per minute", methods=['POST'])
def login():
    """
    User login route with rate limiting and security logging
    """
    # If user is already logged in, redirect to index
    if current_user.is_authenticated:
        return redirect(url_for('posts.index'))

    form = LoginForm()

    if form.validate_on_submit():
        user = db.session.scalar(
            sa.select(Member).where(Member.username == form.username.data)
        )

        if user and user.check_password(form.password.data):
            login_user(user, remember=form.remember_me.data)

            user.last_login = datetime.utcnow()
            db.session.commit()

            audit_log_authentication('LOGIN', user.username, True)

            # Redirect to originally requested page or index
            next_page = request.args.get('next')
            if not next_page or urlsplit(next_page).netloc != '':
                next_page = url_for('posts.index')

            flash(f'Welcome back, {user.name}!', 'success')
            return redirect(next_page)

        audit_log_authentication('LOGIN', form.username.data, False)
        current_app.logger.info(f"Failed login attempt for {form.username.data}")
        flash('Invalid username or password', 'error')

    return render_template('members/login.html', form=form)


@bp.route('/logout')
@login_required
def logout():
    """
    User logout route with audit logging
    """
    audit_log_authentication('LOGOUT', current_user.username, True)
    logout_user()

    flash('You have been logged out successfully.', 'info')
    return redirect(url_for('posts.index'))
