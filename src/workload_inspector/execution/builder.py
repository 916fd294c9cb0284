"""
Turn a token sequence into an ordered pipeline of stages.
"""

from typing import List, Sequence

from ..core.exceptions import BuildError
from ..core.types import Pipeline, StageSpec

PIPE_TOKEN = "|"
NO_COMMAND = "no command provided"


def build_pipeline(tokens: Sequence[str]) -> Pipeline:
    """Split ``tokens`` on the pipe token into stage specs.

    Each run of tokens between pipe tokens becomes one stage, the first
    token being the program. Leading, trailing or doubled pipe tokens are
    not rejected here; they produce a stage with an empty program that the
    runner refuses to start.

    Raises:
        BuildError: If ``tokens`` is empty.
    """
    if not tokens:
        raise BuildError(NO_COMMAND)

    stages: List[StageSpec] = []
    segment: List[str] = []
    for token in list(tokens) + [PIPE_TOKEN]:
        if token != PIPE_TOKEN:
            segment.append(token)
            continue
        program = segment[0] if segment else ""
        stages.append(StageSpec(program=program, arguments=tuple(segment[1:])))
        segment = []

    return tuple(stages)
