from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import logging
from logging.handlers import SMTPHandler, RotatingFileHandler
import os
from flask_moment import Moment

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
login = LoginManager()
moment = Moment()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200 per day", "50 per hour"]
)


def create_app(config_name='development'):
    """Application factory function"""
    app = Flask(__name__)

    # Load configuration
    from config import config
    app.config.from_object(config[config_name])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login.init_app(app)
    login.login_view = 'members.login'
    moment.init_app(app)
    limiter.init_app(app)

    # Configure logging
    configure_logging(app)

    # Register template context processors
    register_template_context_processors(app)

    # Register template filters
    register_template_filters(app)

    # Register middleware
    register_middleware(app)

    # Register blueprints/routes
    register_routes(app)

    # Register CLI commands
    register_commands(app)

    return app


def configure_logging(app):
    """Configure logging for the application"""
    # Ensure instance/logs directory exists
    logs_dir = os.path.join(app.instance_path, 'logs')
    if not os.path.exists(logs_dir):
        os.makedirs(logs_dir)

    # Always log to file (even in debug mode)
    app_log_path = os.path.join(logs_dir, 'app.log')
    file_handler = RotatingFileHandler(app_log_path, maxBytes=10240, backupCount=10)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'))
    file_handler.setLevel(logging.INFO)
    app.logger.addHandler(file_handler)

    # Set appropriate log level
    if app.debug:
        app.logger.setLevel(logging.DEBUG)
    else:
        app.logger.setLevel(logging.INFO)

    # Email notifications for production errors only
    if not app.debug and not app.testing and app.config.get('MAIL_SERVER'):
        auth = None
        if app.config['MAIL_USERNAME'] or app.config['MAIL_PASSWORD']:
            auth = (app.config['MAIL_USERNAME'], app.config['MAIL_PASSWORD'])
        secure = None
        if app.config['MAIL_USE_TLS']:
            secure = ()
        mail_handler = SMTPHandler(
            mailhost=(app.config['MAIL_SERVER'], app.config['MAIL_PORT']),
            fromaddr='no-reply@' + app.config['MAIL_SERVER'],
            toaddrs=app.config['ADMINS'], subject='Post Board Failure',
            credentials=auth, secure=secure)
        mail_handler.setLevel(logging.ERROR)
        app.logger.addHandler(mail_handler)

    app.logger.info('Post Board application startup')

def register_template_context_processors(app):
    """Register template context processors"""

    @app.context_processor
    def inject_menu_items():
        """Make menu items available to all templates"""
        return dict(menu_items=app.config['MENU_ITEMS'])

def register_template_filters(app):
    """Register custom template filters"""

    @app.template_filter('markdown')
    def markdown_filter(text):
        """Render a post or comment body as sanitized HTML"""
        from markupsafe import Markup
        from app.posts.utils import render_body
        return Markup(render_body(text))

def register_middleware(app):
    """Register middleware functions"""

    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses"""
        # Content Security Policy
        response.headers['Content-Security-Policy'] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; "
            "connect-src 'self';"
        )

        # X-Content-Type-Options
        response.headers['X-Content-Type-Options'] = 'nosniff'

        # X-Frame-Options
        response.headers['X-Frame-Options'] = 'DENY'

        # Referrer Policy
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'

        return response


def register_routes(app):
    """Register application routes via blueprints"""
    # Import and register blueprints
    from app.members import bp as members_bp
    from app.posts import bp as posts_bp

    app.register_blueprint(members_bp, url_prefix='/members')
    app.register_blueprint(posts_bp, url_prefix='/posts')

    # The post listing doubles as the home page
    from app.posts.routes import index
    app.add_url_rule('/', endpoint='index', view_func=index)

    # Register error handlers
    from app.errors import register_error_handlers
    register_error_handlers(app)

    # Import models to ensure they're loaded
    from app import models


def register_commands(app):
    """Register maintenance CLI commands"""
    from app.posts.commands import posts_cli
    app.cli.add_command(posts_cli)
