"""
Shell-pipeline command execution.
"""

from .builder import PIPE_TOKEN, build_pipeline
from .executor import PipelineRunner, RunningStage, SharedBuffer, StageLink, run_command
from .tokenizer import tokenize

__all__ = [
    "PIPE_TOKEN",
    "PipelineRunner",
    "RunningStage",
    "SharedBuffer",
    "StageLink",
    "build_pipeline",
    "run_command",
    "tokenize",
]
