"""
HTTP transport.
"""

from .app import create_app, create_token, make_http_server

__all__ = ["create_app", "create_token", "make_http_server"]
