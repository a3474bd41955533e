import contextlib
import threading
import time
from dataclasses import dataclass
from typing import Callable, ContextManager, Optional

from dispatcher.config import SandboxConfig
from dispatcher.exception import (
    CompileFailure,
    ExecutionCancelled,
    ExecutionTimeout,
    MemoryLimitExceeded,
    RuntimeFailure,
    RuntimeUnavailable,
)
from dispatcher.registry import BUILD_DIR, CODE_DIR, RuntimeProfile
from dispatcher.utils import logger
from dispatcher.workspace import Unit
from runner.path_utils import PathTranslator
from runner.sandbox import MLE, OK, RE, TLE, Result, Sandbox


@dataclass
class StepOutput:
    stdout: str
    stderr: str
    duration: float  # ms
    mem_usage: float  # MB


class SubmissionRunner:
    """Compile and run one prepared unit, one sandbox per step."""

    def __init__(
        self,
        profile: RuntimeProfile,
        unit: Unit,
        sandbox_config: SandboxConfig,
        cancel_event: Optional[threading.Event] = None,
        container_slot: Callable[[], ContextManager] = contextlib.nullcontext,
    ):
        self.profile = profile
        self.unit = unit
        self.config = sandbox_config
        self.cancel_event = cancel_event
        self.container_slot = container_slot
        self.translator = PathTranslator(
            workspace_root=sandbox_config.workspace_root,
            host_root=sandbox_config.host_workspace_root or None,
        )

    def compile(self) -> StepOutput:
        if not self.profile.compile_need:
            return StepOutput(stdout="", stderr="", duration=0, mem_usage=0)
        result = self._run_sandbox(
            command=self.profile.compile_command,
            binds=self._binds(build_writable=True),
            stdin="",
            time_limit=self.config.compile_time_limit,
            mem_limit=self.config.compile_mem_limit,
        )
        if result.status == TLE:
            raise CompileFailure("compilation timed out")
        if result.status != OK:
            raise CompileFailure(result.stderr.strip()
                                 or result.stdout.strip())
        return StepOutput(
            stdout=result.stdout,
            stderr=result.stderr,
            duration=result.duration,
            mem_usage=result.mem_usage,
        )

    def run(self, stdin: str, time_limit: int, mem_limit: int) -> StepOutput:
        result = self._run_sandbox(
            command=self.profile.run_command,
            binds=self._binds(build_writable=False),
            stdin=stdin,
            time_limit=time_limit,
            mem_limit=mem_limit,
        )
        if result.status == TLE:
            raise ExecutionTimeout(time_limit, result.duration)
        if result.status == MLE:
            raise MemoryLimitExceeded(
                result.stderr or f"memory limit exceeded ({mem_limit} MB)",
                exit_code=result.exit_code,
                duration=result.duration,
                mem_usage=result.mem_usage,
            )
        if result.status == RE:
            raise RuntimeFailure(
                result.stderr,
                exit_code=result.exit_code,
                duration=result.duration,
                mem_usage=result.mem_usage,
            )
        return StepOutput(
            stdout=result.stdout,
            stderr=result.stderr,
            duration=result.duration,
            mem_usage=result.mem_usage,
        )

    def _binds(self, build_writable: bool) -> dict:
        return {
            str(self.translator.to_host(self.unit.src_dir)): {
                "bind": CODE_DIR,
                "mode": "ro",
            },
            str(self.translator.to_host(self.unit.build_dir)): {
                "bind": BUILD_DIR,
                "mode": "rw" if build_writable else "ro",
            },
        }

    def _run_sandbox(self, **kwargs) -> Result:
        attempt = 0
        while True:
            try:
                with self.container_slot():
                    return Sandbox(
                        image=self.profile.image,
                        docker_url=self.config.docker_url,
                        cpu_period=self.config.cpu_period,
                        cpu_quota=self.config.cpu_quota,
                        pids_limit=self.config.pids_limit,
                        output_limit=self.config.output_limit,
                        poll_interval=self.config.poll_interval,
                        cancel_event=self.cancel_event,
                        **kwargs,
                    ).run()
            except RuntimeUnavailable as exc:
                if attempt >= self.config.runtime_retries:
                    raise
                delay = self.config.retry_backoff * 2**attempt
                attempt += 1
                logger().warning(
                    f"sandbox unavailable, retry {attempt}/"
                    f"{self.config.runtime_retries} in {delay:.1f}s: {exc}")
                self._sleep(delay)

    def _sleep(self, delay: float):
        if self.cancel_event is None:
            time.sleep(delay)
        elif self.cancel_event.wait(delay):
            raise ExecutionCancelled("execution cancelled by caller")
