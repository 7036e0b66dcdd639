"""Push delivery over HTTP."""

from .server import create_app

__all__ = ["create_app"]
