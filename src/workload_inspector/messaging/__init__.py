"""
NATS messaging transport.
"""

from .service import NAME, PREFIX, parse_run_request, serve, start_micro_service

__all__ = ["NAME", "PREFIX", "parse_run_request", "serve", "start_micro_service"]
