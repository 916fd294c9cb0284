"""
Workload inspector - run shell-style command pipelines on a workload host.

The package exposes the pipeline executor (``run_command``), the
``Inspector`` facade shared by the HTTP and NATS transports, and package
metadata retrieved from the installed distribution when available.
"""

from importlib import metadata as importlib_metadata
from importlib.metadata import PackageNotFoundError

# Local/package imports
from .core.types import ExecutionResult
from .execution import run_command
from .inspector import Inspector
from .utils.logger import get_logger

# Configure package-level logger
package_logger = get_logger(__name__)

__version__ = "0.0.1"
__title__ = "workload-inspector"


def get_metadata():
    """Extract version and name from the package distribution when available."""

    global __version__, __title__

    try:
        _meta = importlib_metadata.metadata("workload-inspector")
    except PackageNotFoundError:
        return

    __version__ = _meta.get("Version", __version__)
    __title__ = _meta.get("Name", __title__)


get_metadata()

__all__ = [
    "ExecutionResult",
    "Inspector",
    "run_command",
    "__version__",
    "__title__",
]
