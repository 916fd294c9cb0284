"""
Core types and exceptions of the workload inspector.
"""

from .exceptions import (
    BuildError,
    ConfigError,
    InspectorError,
    LinkCreationError,
    ParseError,
    PipelineFailure,
    PipelineIOError,
    PipelineTimeoutError,
    ProcessSpawnError,
    RequestError,
    StageExecutionError,
)
from .types import UNKNOWN_EXIT_CODE, ExecutionResult, Pipeline, StageSpec

__all__ = [
    "BuildError",
    "ConfigError",
    "ExecutionResult",
    "InspectorError",
    "LinkCreationError",
    "ParseError",
    "Pipeline",
    "PipelineFailure",
    "PipelineIOError",
    "PipelineTimeoutError",
    "ProcessSpawnError",
    "RequestError",
    "StageExecutionError",
    "StageSpec",
    "UNKNOWN_EXIT_CODE",
]
