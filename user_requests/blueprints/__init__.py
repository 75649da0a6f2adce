"""Flask blueprints and their registration."""

from flask import Flask

from .users import users_bp


def register_blueprints(app: Flask) -> None:
    """Register every application blueprint."""
    app.register_blueprint(users_bp)


__all__ = ['users_bp', 'register_blueprints']
