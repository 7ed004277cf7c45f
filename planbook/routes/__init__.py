"""
Planbook API Routes
===================

All API route blueprints for the Planbook application.

Usage:
    from planbook.routes import register_routes
    register_routes(app)
"""
from .scanner_routes import scanner_bp
from .calendar_routes import calendar_bp


def register_routes(app):
    """Register all route blueprints with the Flask app."""
    app.register_blueprint(scanner_bp)
    app.register_blueprint(calendar_bp)


__all__ = [
    'register_routes',
    'scanner_bp',
    'calendar_bp',
]
