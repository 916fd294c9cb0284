"""
Service facade shared by the HTTP and NATS transports.
"""

import os
from typing import Dict, Mapping, Optional

from .core.types import ExecutionResult
from .execution import run_command
from .utils.logger import get_logger

logger = get_logger(__name__)


class Inspector:
    """Inspects the workload environment and runs commands on the host."""

    def __init__(
        self,
        command_timeout: Optional[float] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.command_timeout = command_timeout
        self._environ = environ

    def ping(self) -> str:
        return "PONG"

    def get_environment(self) -> Dict[str, str]:
        """Return the host's environment variables."""
        environ = os.environ if self._environ is None else self._environ
        return dict(environ)

    def run_command(self, command: str) -> ExecutionResult:
        """Run ``command`` on the host.

        Errors from tokenizing, building or running the pipeline propagate
        unchanged; partial results travel on the exception's ``result``.
        """
        logger.info("Running command: %s", command)
        return run_command(command, timeout=self.command_timeout)
