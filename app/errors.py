from flask import render_template
from app import db


def register_error_handlers(app):
    """Register error handlers with the Flask application"""

    @app.errorhandler(403)
    def forbidden_error(error):
        return render_template('403.html'), 403

    @app.errorhandler(404)
    def not_found_error(error):
        return render_template('404.html'), 404

    @app.errorhandler(413)
    def too_large_error(error):
        return render_template('413.html'), 413

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return render_template('500.html'), 500
