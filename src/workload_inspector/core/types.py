"""
Data types shared by the pipeline executor and its transports.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Exit code reported for a stage that was killed by a signal or never reaped
UNKNOWN_EXIT_CODE = -1


@dataclass(frozen=True)
class StageSpec:
    """One pipeline stage: a program and its ordered arguments."""

    program: str
    arguments: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def argv(self) -> List[str]:
        """Full argument vector, program first."""
        return [self.program, *self.arguments]

    @property
    def display(self) -> str:
        return " ".join(self.argv)


Pipeline = Tuple[StageSpec, ...]


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of running a command pipeline."""

    stdout: bytes = b""
    stderr: bytes = b""
    exit_code: int = 0
    error: Optional[str] = None

    @classmethod
    def empty(cls) -> "ExecutionResult":
        """Zero-valued result used for blank commands."""
        return cls()

    @property
    def ok(self) -> bool:
        return self.error is None and self.exit_code == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to the wire shape ``{stdout, stderr, code, error?}``."""
        data: Dict[str, Any] = {
            "stdout": self.stdout.decode("utf-8", errors="replace"),
            "stderr": self.stderr.decode("utf-8", errors="replace"),
            "code": self.exit_code,
        }
        if self.error:
            data["error"] = self.error
        return data
