"""Subprocess execution of the local model-runner (llama.cpp CLI).

Every attempt runs inside its own workspace directory holding the prompt,
the captured stdout (the model's answer) and stderr. The workspace is removed
before the attempt returns, whatever happened to the child.

Attempt states: created -> running -> succeeded | timed_out | crashed.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
import shutil
import signal
import subprocess
import time
import uuid
from dataclasses import dataclass
from enum import Enum

import aiofiles

logger = logging.getLogger(__name__)

GPU_ERROR_MARKERS = ("CUDA", "cudaMalloc", "hipError", "ROCm")


class JobState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    CRASHED = "crashed"
    LAUNCH_FAILED = "launch_failed"


@dataclass(frozen=True)
class RunnerParams:
    max_tokens: int
    temperature: float | None = None
    repeat_penalty: float | None = None
    gpu_layers: int | None = None


PRIMARY_PARAMS = RunnerParams(max_tokens=512, temperature=0.7, repeat_penalty=1.1, gpu_layers=1)
FALLBACK_PARAMS = RunnerParams(max_tokens=256)


def build_command(executable: str, model_path: str, prompt_file: str, params: RunnerParams) -> list[str]:
    """Build the runner argv. The prompt always travels by file, never inline."""
    argv = [executable, "-m", model_path, "-f", prompt_file, "-n", str(params.max_tokens)]
    if params.temperature is not None:
        argv += ["--temp", str(params.temperature)]
    if params.repeat_penalty is not None:
        argv += ["--repeat_penalty", str(params.repeat_penalty)]
    if params.gpu_layers is not None:
        argv += ["-ngl", str(params.gpu_layers)]
    return argv


def has_gpu_marker(stderr: str) -> bool:
    return any(marker in stderr for marker in GPU_ERROR_MARKERS)


@dataclass
class ExecutionJob:
    id: str
    work_dir: str
    prompt_file: str
    output_file: str
    stderr_file: str
    deadline: float
    state: JobState = JobState.CREATED

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())


@dataclass(frozen=True)
class AttemptResult:
    job_id: str
    state: JobState
    output: str = ""
    stderr: str = ""
    returncode: int | None = None
    error: str = ""

    @property
    def usable(self) -> bool:
        return bool(self.output.strip())

    @property
    def gpu_error(self) -> bool:
        return not self.usable and has_gpu_marker(self.stderr)


@dataclass(frozen=True)
class ExecutionOutcome:
    primary: AttemptResult
    fallback: AttemptResult | None = None

    @property
    def text(self) -> str | None:
        for attempt in (self.primary, self.fallback):
            if attempt is not None and attempt.usable:
                return attempt.output
        return None


def should_fall_back(primary: AttemptResult) -> bool:
    """Retry only a clean exit that printed nothing; errors and timeouts are final."""
    return primary.state is JobState.SUCCEEDED and not primary.usable and not primary.gpu_error


class ExecutionEngine:
    """Runs model files through the runner executable, one workspace per attempt."""

    def __init__(
        self,
        executable: str | None,
        workspace_dir: str,
        *,
        timeout: float = 60.0,
        fallback_timeout: float = 30.0,
        terminate_grace: float = 2.0,
    ) -> None:
        self.executable = executable
        self.workspace_dir = workspace_dir
        self.timeout = timeout
        self.fallback_timeout = fallback_timeout
        self.terminate_grace = terminate_grace

    async def run(self, model_path: str, prompt: str, *, timeout: float | None = None) -> ExecutionOutcome:
        if not self.executable:
            return ExecutionOutcome(
                primary=AttemptResult(
                    job_id="",
                    state=JobState.LAUNCH_FAILED,
                    error="no llama.cpp executable found",
                )
            )

        primary = await self._attempt(model_path, prompt, PRIMARY_PARAMS, timeout or self.timeout)
        if not should_fall_back(primary):
            return ExecutionOutcome(primary=primary)

        logger.info("Primary run of %s produced no output; trying fallback command", model_path)
        fallback = await self._attempt(model_path, prompt, FALLBACK_PARAMS, self.fallback_timeout)
        return ExecutionOutcome(primary=primary, fallback=fallback)

    def _create_job(self, timeout: float) -> ExecutionJob:
        os.makedirs(self.workspace_dir, exist_ok=True)
        job_id = uuid.uuid4().hex
        work_dir = os.path.join(self.workspace_dir, f"job_{job_id}")
        # exclusive create: a collision raises instead of sharing a workspace
        os.mkdir(work_dir)
        return ExecutionJob(
            id=job_id,
            work_dir=work_dir,
            prompt_file=os.path.join(work_dir, "prompt.txt"),
            output_file=os.path.join(work_dir, "output.txt"),
            stderr_file=os.path.join(work_dir, "stderr.txt"),
            deadline=time.monotonic() + timeout,
        )

    async def _attempt(
        self, model_path: str, prompt: str, params: RunnerParams, timeout: float
    ) -> AttemptResult:
        job = self._create_job(timeout)
        try:
            async with aiofiles.open(job.prompt_file, "w", encoding="utf-8") as f:
                await f.write(prompt)

            argv = build_command(self.executable, model_path, job.prompt_file, params)
            logger.info("Running command: %s", shlex.join(argv))

            returncode: int | None = None
            error = ""
            with open(job.output_file, "wb") as out, open(job.stderr_file, "wb") as err:
                try:
                    proc = await asyncio.create_subprocess_exec(
                        *argv,
                        stdin=subprocess.DEVNULL,
                        stdout=out,
                        stderr=err,
                        start_new_session=os.name == "posix",
                    )
                except OSError as e:
                    logger.error("Failed to launch %s: %s", self.executable, e)
                    job.state = JobState.LAUNCH_FAILED
                    error = str(e)
                else:
                    job.state = JobState.RUNNING
                    job.state = await self._wait(proc, job)
                    returncode = proc.returncode

            output = self._read_text(job.output_file)
            stderr = self._read_text(job.stderr_file)
            if job.state is JobState.TIMED_OUT:
                error = f"llama.cpp did not finish within {timeout:.0f}s"
            elif job.state is JobState.CRASHED:
                error = f"llama.cpp exited with code {returncode}"
            logger.info(
                "Job %s %s (response length: %d characters)",
                job.id, job.state.value, len(output),
            )
            return AttemptResult(
                job_id=job.id,
                state=job.state,
                output=output,
                stderr=stderr,
                returncode=returncode,
                error=error,
            )
        finally:
            self._cleanup(job)

    async def _wait(self, proc: asyncio.subprocess.Process, job: ExecutionJob) -> JobState:
        try:
            await asyncio.wait_for(proc.wait(), timeout=job.remaining())
        except asyncio.TimeoutError:
            logger.warning("Job %s exceeded its deadline; terminating pid %d", job.id, proc.pid)
            await self._terminate(proc)
            return JobState.TIMED_OUT
        return JobState.SUCCEEDED if proc.returncode == 0 else JobState.CRASHED

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        """Stop the child and its process group, escalating to SIGKILL."""
        if proc.returncode is not None:
            return
        self._signal(proc, signal.SIGTERM)
        try:
            await asyncio.wait_for(proc.wait(), timeout=self.terminate_grace)
            return
        except asyncio.TimeoutError:
            logger.warning("pid %d ignored SIGTERM; killing", proc.pid)
        self._signal(proc, getattr(signal, "SIGKILL", signal.SIGTERM))
        await proc.wait()

    @staticmethod
    def _signal(proc: asyncio.subprocess.Process, sig: int) -> None:
        try:
            if os.name == "posix":
                os.killpg(proc.pid, sig)
            elif sig == signal.SIGTERM:
                proc.terminate()
            else:
                proc.kill()
        except ProcessLookupError:
            pass

    @staticmethod
    def _read_text(path: str) -> str:
        try:
            if os.path.exists(path):
                with open(path, "rb") as f:
                    return f.read().decode("utf-8", errors="replace")
        except OSError as e:
            logger.error("Error reading %s: %s", path, e)
        return ""

    @staticmethod
    def _cleanup(job: ExecutionJob) -> None:
        for path in (job.prompt_file, job.output_file, job.stderr_file):
            try:
                if os.path.exists(path):
                    os.unlink(path)
            except OSError as e:
                logger.warning("Error removing %s for job %s: %s", path, job.id, e)

        def log_error(func, path, exc_info):
            logger.warning("Error cleaning up job %s at %s: %s", job.id, path, exc_info[1])

        # anything the runner left behind goes with the workspace
        shutil.rmtree(job.work_dir, onerror=log_error)
