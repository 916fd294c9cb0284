"""
Pipeline execution: start every stage as an OS process, wire adjacent
stages together with raw pipes and collect the combined output.
"""

import os
import signal
import subprocess
import threading
import time
from typing import IO, List, Optional, Sequence

from ..core.exceptions import (
    BuildError,
    LinkCreationError,
    PipelineIOError,
    PipelineTimeoutError,
    ProcessSpawnError,
    StageExecutionError,
)
from ..core.types import UNKNOWN_EXIT_CODE, ExecutionResult, Pipeline, StageSpec
from ..utils.logger import get_logger
from .builder import NO_COMMAND, build_pipeline
from .tokenizer import tokenize

logger = get_logger(__name__)

READ_CHUNK_SIZE = 64 * 1024


class SharedBuffer:
    """Append-only byte sink that several drain threads may write to."""

    def __init__(self):
        self._data = bytearray()
        self._lock = threading.Lock()

    def write(self, chunk: bytes) -> None:
        with self._lock:
            self._data.extend(chunk)

    def getvalue(self) -> bytes:
        with self._lock:
            return bytes(self._data)


def _drain(stream: IO[bytes], sink: SharedBuffer) -> None:
    """Copy ``stream`` into ``sink`` until EOF."""
    try:
        while True:
            chunk = stream.read1(READ_CHUNK_SIZE)
            if not chunk:
                break
            sink.write(chunk)
    except (OSError, ValueError) as e:
        logger.error("Error draining stage output: %s", e)
    finally:
        stream.close()


class StageLink:
    """Unidirectional pipe from stage ``index`` to stage ``index + 1``.

    Each end is closed at most once; a failed close is never retried.
    """

    def __init__(self, index: int):
        self.index = index
        self.read_fd, self.write_fd = os.pipe()
        self._reader_open = True
        self._writer_open = True

    @property
    def closed(self) -> bool:
        return not (self._reader_open or self._writer_open)

    def close_reader(self) -> None:
        if self._reader_open:
            self._reader_open = False
            os.close(self.read_fd)

    def close_writer(self) -> None:
        if self._writer_open:
            self._writer_open = False
            os.close(self.write_fd)

    def close(self) -> None:
        """Close the readable end, then the writable end."""
        try:
            self.close_reader()
        finally:
            self.close_writer()


class RunningStage:
    """A started stage process plus the threads draining its output."""

    def __init__(
        self,
        index: int,
        spec: StageSpec,
        process: subprocess.Popen,
        drains: Sequence[threading.Thread],
    ):
        self.index = index
        self.spec = spec
        self.process = process
        self.drains = list(drains)
        self.reaped = False

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def exit_code(self) -> int:
        """Exit status, or -1 if the stage was signalled or not yet reaped."""
        code = self.process.returncode
        if not self.reaped or code is None or code < 0:
            return UNKNOWN_EXIT_CODE
        return code

    def wait(self, timeout: Optional[float] = None) -> int:
        """Block until the process exits and its output is fully drained.

        Raises:
            subprocess.TimeoutExpired: If ``timeout`` elapses first.
        """
        self.process.wait(timeout=timeout)
        for drain in self.drains:
            drain.join()
        self.reaped = True
        return self.process.returncode

    def kill(self) -> None:
        if self.process.poll() is None:
            try:
                self.process.kill()
            except ProcessLookupError:
                pass


def _describe_status(returncode: int) -> str:
    if returncode < 0:
        try:
            return f"signal: {signal.Signals(-returncode).name}"
        except ValueError:
            return f"signal: {-returncode}"
    return f"exit status {returncode}"


def _remaining(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())


class PipelineRunner:
    """Runs a pipeline of external processes connected stdout-to-stdin.

    Each call to :meth:`run` owns its processes, links and buffers, so one
    runner may be used from several threads at once.

    Args:
        timeout: Optional deadline in seconds for the whole pipeline. With
            the default of ``None`` a hung stage blocks the call forever.
    """

    link_factory = StageLink

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    def run(self, pipeline: Pipeline) -> ExecutionResult:
        """Run every stage of ``pipeline`` and return the combined result.

        Raises:
            LinkCreationError: A pipe could not be created. Nothing is
                started and no result is produced.
            ProcessSpawnError: A stage could not be started. Nothing after it
                is started and no result is produced.
            PipelineIOError: A link end could not be closed; carries a
                partial result.
            StageExecutionError: A stage exited non-zero or timed out;
                carries a partial result.
        """
        if not pipeline:
            raise BuildError(NO_COMMAND)

        stdout_buf = SharedBuffer()
        stderr_buf = SharedBuffer()
        deadline = None if self.timeout is None else time.monotonic() + self.timeout

        links: List[StageLink] = []
        stages: List[RunningStage] = []
        try:
            # Every link exists before any downstream stage is started
            for index in range(len(pipeline) - 1):
                links.append(self._open_link(index))
            for index, spec in enumerate(pipeline):
                stages.append(
                    self._start_stage(index, spec, pipeline, links, stdout_buf, stderr_buf)
                )
            return self._finish(stages, links, stdout_buf, stderr_buf, deadline)
        finally:
            self._release(stages, links, deadline)

    def _open_link(self, index: int) -> StageLink:
        try:
            return self.link_factory(index)
        except OSError as e:
            logger.error("Failed to create link %d: %s", index, e)
            raise LinkCreationError(index, str(e)) from e

    def _start_stage(
        self,
        index: int,
        spec: StageSpec,
        pipeline: Pipeline,
        links: Sequence[StageLink],
        stdout_buf: SharedBuffer,
        stderr_buf: SharedBuffer,
    ) -> RunningStage:
        if not spec.program:
            raise ProcessSpawnError(index, spec.program, spec.argv, "empty program name")

        is_last = index == len(pipeline) - 1
        stdin = links[index - 1].read_fd if index > 0 else subprocess.DEVNULL
        stdout = subprocess.PIPE if is_last else links[index].write_fd

        try:
            process = subprocess.Popen(
                spec.argv,
                stdin=stdin,
                stdout=stdout,
                stderr=subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            logger.error("Failed to start stage %d (%s): %s", index, spec.program, e)
            raise ProcessSpawnError(index, spec.program, spec.argv, str(e)) from e

        streams = [process.stderr]
        sinks = [stderr_buf]
        if is_last:
            streams.append(process.stdout)
            sinks.append(stdout_buf)

        drains = []
        for stream, sink in zip(streams, sinks):
            drain = threading.Thread(
                target=_drain,
                args=(stream, sink),
                name=f"drain-{process.pid}",
                daemon=True,
            )
            drain.start()
            drains.append(drain)

        logger.debug("Started stage %d (pid %d): %s", index, process.pid, spec.display)
        return RunningStage(index, spec, process, drains)

    def _finish(
        self,
        stages: Sequence[RunningStage],
        links: Sequence[StageLink],
        stdout_buf: SharedBuffer,
        stderr_buf: SharedBuffer,
        deadline: Optional[float],
    ) -> ExecutionResult:
        # Release the orchestrator's copies of every link, reader before
        # writer, so a downstream stage sees EOF once its writer exits.
        for link in links:
            downstream = stages[link.index + 1]
            for close, label in ((link.close_reader, "reader"), (link.close_writer, "writer")):
                try:
                    close()
                except OSError as e:
                    raise PipelineIOError(
                        f"error closing {label}: {e}",
                        self._partial(stdout_buf, stderr_buf, downstream.exit_code, str(e)),
                        stage=downstream.index,
                    ) from e

        for stage in stages:
            try:
                returncode = stage.wait(timeout=_remaining(deadline))
            except subprocess.TimeoutExpired as e:
                self._kill_all(stages)
                message = f"pipeline timed out after {self.timeout} seconds"
                raise PipelineTimeoutError(
                    message,
                    self._partial(stdout_buf, stderr_buf, UNKNOWN_EXIT_CODE, message),
                    stage=stage.index,
                ) from e
            except OSError as e:
                raise StageExecutionError(
                    f'error running command "{stage.spec.display}": {e}',
                    self._partial(stdout_buf, stderr_buf, stage.exit_code, str(e)),
                    stage=stage.index,
                ) from e

            if returncode != 0:
                status = _describe_status(returncode)
                raise StageExecutionError(
                    f'error running command "{stage.spec.display}": {status}',
                    self._partial(stdout_buf, stderr_buf, stage.exit_code, status),
                    stage=stage.index,
                )

        return ExecutionResult(
            stdout=stdout_buf.getvalue(),
            stderr=stderr_buf.getvalue(),
            exit_code=stages[-1].exit_code,
        )

    def _partial(
        self,
        stdout_buf: SharedBuffer,
        stderr_buf: SharedBuffer,
        exit_code: int,
        error: str,
    ) -> ExecutionResult:
        stderr = stderr_buf.getvalue()
        if stderr:
            logger.error("Pipeline stderr:\n%s", stderr.decode("utf-8", errors="replace"))
        return ExecutionResult(
            stdout=stdout_buf.getvalue(),
            stderr=stderr,
            exit_code=exit_code,
            error=error,
        )

    def _kill_all(self, stages: Sequence[RunningStage]) -> None:
        for stage in stages:
            stage.kill()

    def _release(
        self,
        stages: Sequence[RunningStage],
        links: Sequence[StageLink],
        deadline: Optional[float],
    ) -> None:
        """Close any link end still open and reap every started stage."""
        for link in links:
            try:
                link.close()
            except OSError as e:
                logger.warning("Error closing link %d during cleanup: %s", link.index, e)

        for stage in stages:
            if stage.reaped:
                continue
            try:
                stage.wait(timeout=_remaining(deadline))
            except subprocess.TimeoutExpired:
                stage.kill()
                stage.wait()
            except OSError as e:
                logger.warning("Error reaping stage %d (pid %d): %s", stage.index, stage.pid, e)


def run_command(raw: str, timeout: Optional[float] = None) -> ExecutionResult:
    """Tokenize, build and run a command string.

    Blank input returns an empty result without starting anything.

    Raises:
        ParseError: Malformed quoting.
        BuildError: The command resolves to no stages.
        LinkCreationError, ProcessSpawnError, PipelineIOError,
        StageExecutionError: See :meth:`PipelineRunner.run`.
    """
    if not raw or not raw.strip():
        return ExecutionResult.empty()

    pipeline = build_pipeline(tokenize(raw))
    logger.debug("Running pipeline with %d stage(s): %s", len(pipeline), raw)
    return PipelineRunner(timeout=timeout).run(pipeline)
