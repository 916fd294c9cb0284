"""
Custom exceptions for the workload inspector.

The hierarchy is organized as follows:

- InspectorError: Base exception for all inspector errors
  - ParseError: Malformed quoting in a raw command string
  - BuildError: Command resolves to no pipeline stages
  - ProcessSpawnError: A pipeline stage could not be launched
  - LinkCreationError: A pipe between two stages could not be created
  - PipelineFailure: Base for failures that carry a partial result
    - PipelineIOError: Closing a pipe end between stages failed
    - StageExecutionError: A stage exited non-zero or could not be waited on
      - PipelineTimeoutError: The pipeline exceeded its deadline
  - ConfigError: Missing or invalid environment configuration
  - RequestError: Malformed transport request
"""

from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

if TYPE_CHECKING:
    from .types import ExecutionResult


class InspectorError(Exception):
    """Base exception for all workload inspector errors."""

    default_code = "INSPECTOR_ERROR"

    def __init__(
        self,
        message: str,
        *args: Any,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.context = context or {}
        super().__init__(message, *args)

    def __str__(self) -> str:
        return self.message


class ParseError(InspectorError):
    """Raised when a command string cannot be tokenized."""

    default_code = "PARSE_ERROR"

    def __init__(self, raw: str, reason: str):
        self.raw = raw
        self.reason = reason
        super().__init__(
            f'error parsing command "{raw}": {reason}',
            context={"raw": raw, "reason": reason},
        )


class BuildError(InspectorError):
    """Raised when a token sequence cannot be turned into a pipeline."""

    default_code = "BUILD_ERROR"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class ProcessSpawnError(InspectorError):
    """Raised when a pipeline stage fails to start.

    No partial result accompanies this error: an unlaunched pipeline has
    no meaningful output.
    """

    default_code = "PROCESS_SPAWN_ERROR"

    def __init__(self, stage: int, program: str, argv: Sequence[str], underlying: str):
        self.stage = stage
        self.program = program
        self.argv = list(argv)
        self.underlying = underlying
        super().__init__(
            f'error starting command "{" ".join(argv)}": {underlying}',
            context={"stage": stage, "program": program},
        )


class LinkCreationError(InspectorError):
    """Raised when the OS refuses to create a pipe between two stages."""

    default_code = "LINK_CREATION_ERROR"

    def __init__(self, index: int, underlying: str):
        self.index = index
        self.underlying = underlying
        super().__init__(
            f"error creating pipe: {underlying}",
            context={"link": index},
        )


class PipelineFailure(InspectorError):
    """Base for pipeline errors that carry a partial execution result."""

    default_code = "PIPELINE_FAILURE"

    def __init__(
        self,
        message: str,
        result: "ExecutionResult",
        stage: Optional[int] = None,
    ):
        self.result = result
        self.stage = stage
        super().__init__(message, context={"stage": stage, "exit_code": result.exit_code})


class PipelineIOError(PipelineFailure):
    """Raised when closing a pipe end between two stages fails."""

    default_code = "PIPELINE_IO_ERROR"


class StageExecutionError(PipelineFailure):
    """Raised when a stage exits non-zero or waiting on it fails."""

    default_code = "STAGE_EXECUTION_ERROR"


class PipelineTimeoutError(StageExecutionError):
    """Raised when a pipeline does not finish before its deadline."""

    default_code = "PIPELINE_TIMEOUT"


class ConfigError(InspectorError):
    """Raised when there's an error in the configuration."""

    default_code = "CONFIG_ERROR"


class RequestError(InspectorError):
    """Raised when a transport request is malformed."""

    default_code = "100"
