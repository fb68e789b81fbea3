"""
PulsePixel chat assistant package.

This module exposes helpers for creating the FastAPI application so that both
runtime code and tests can import the same app instance.

Note: imports are lazy so importing a submodule (for example the rule engine)
does not build the whole application.
"""


def create_app(*args, **kwargs):
    """Lazy import wrapper for create_app to avoid import-time app creation."""
    from .main import create_app as _create_app
    return _create_app(*args, **kwargs)


def get_app():
    """Get or create the FastAPI application instance."""
    from .main import app
    return app


__all__ = ["create_app", "get_app"]
