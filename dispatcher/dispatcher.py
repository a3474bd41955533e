import contextlib
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional

from runner.submission import SubmissionRunner
from . import harness
from .comparator import compare, normalize
from .config import SandboxConfig
from .constant import Status
from .exception import (
    CompileFailure,
    ExecutionTimeout,
    MemoryLimitExceeded,
    RuntimeFailure,
)
from .meta import ExecutionRequest, ExecutionSummary, TestCase, TestResult
from .registry import RuntimeProfile, RuntimeRegistry, load_registry
from .result_factory import make_case_result, make_summary
from .utils import logger
from .workspace import Unit, Workspace, WorkspaceManager


@dataclass
class CaseJob:
    index: int
    case: TestCase
    unit: Optional[Unit] = None
    # set when the case can be resolved without running it
    early_result: Optional[TestResult] = None


class Dispatcher:
    """Judge one execution request: every test case in its own sandbox."""

    def __init__(
        self,
        registry: Optional[RuntimeRegistry] = None,
        sandbox_config: Optional[SandboxConfig] = None,
        workspace_manager: Optional[WorkspaceManager] = None,
    ):
        self.registry = registry or load_registry()
        self.config = sandbox_config or SandboxConfig.from_env()
        self.workspaces = workspace_manager or WorkspaceManager(
            self.config.workspace_root)
        # manage containers
        self.MAX_CONTAINER_SIZE = self.config.max_container_number
        self.container_slots = threading.BoundedSemaphore(
            self.MAX_CONTAINER_SIZE)
        self.container_count_lock = threading.Lock()
        self.container_count = 0
        self.executions: Dict[str, str] = {}
        self.executions_lock = threading.Lock()

    def inc_container(self):
        with self.container_count_lock:
            self.container_count += 1

    def dec_container(self):
        with self.container_count_lock:
            self.container_count -= 1

    @contextlib.contextmanager
    def container_slot(self):
        with self.container_slots:
            self.inc_container()
            try:
                yield
            finally:
                self.dec_container()

    def execute(
        self,
        request: ExecutionRequest,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExecutionSummary:
        """
        Run every test case of ``request`` and summarize the outcome.

        Raises ``UnsupportedLanguage`` before anything is allocated,
        ``RuntimeUnavailable`` when sandboxes cannot be started even after
        retries, and ``ExecutionCancelled`` when ``cancel_event`` is set.
        When the request aborts while cases run in parallel, ``cancel_event``
        is set to tear down the sibling sandboxes.
        """
        profile = self.registry.profile_for(request.language)
        time_limit = request.timeLimitMs or self.config.default_time_limit
        mem_limit = request.memoryLimitMb or self.config.default_mem_limit
        if cancel_event is None:
            cancel_event = threading.Event()
        with self.workspaces.scoped() as workspace:
            execution_id = workspace.execution_id
            with self.executions_lock:
                self.executions[execution_id] = profile.language
            try:
                logger().info(
                    f"start execution [id={execution_id}, lang={profile.language}, "
                    f"cases={len(request.testCases)}]")
                jobs = self._prepare_jobs(request, profile, workspace)
                compile_errors = self._compile_units(jobs, profile,
                                                     cancel_event)
                results = self._run_jobs(
                    jobs,
                    profile,
                    compile_errors,
                    time_limit,
                    mem_limit,
                    cancel_event,
                )
            finally:
                with self.executions_lock:
                    self.executions.pop(execution_id, None)
        summary = make_summary(request.testCases, results)
        logger().info(f"finish execution [id={execution_id}]: "
                      f"{summary.passedCount}/{summary.totalCount} passed")
        return summary

    def _prepare_jobs(
        self,
        request: ExecutionRequest,
        profile: RuntimeProfile,
        workspace: Workspace,
    ) -> List[CaseJob]:
        jobs = []
        for index, case in enumerate(request.testCases):
            job = CaseJob(index=index, case=case)
            try:
                source = harness.prepare(request.code, case.input, profile)
                job.unit = workspace.materialize(source, profile.filename)
            except OSError as exc:
                logger().warning(
                    f"prepare case failed [id={workspace.execution_id} "
                    f"case={index}]: {exc}")
                job.early_result = make_case_result(
                    case,
                    Status.JE,
                    error=f"prepare case failed: {exc}",
                )
            jobs.append(job)
        return jobs

    def _compile_units(
        self,
        jobs: List[CaseJob],
        profile: RuntimeProfile,
        cancel_event: threading.Event,
    ) -> Dict[str, CompileFailure]:
        """Compile each distinct unit once; failures are shared by its cases."""
        errors = {}
        if not profile.compile_need:
            return errors
        compiled = set()
        for job in jobs:
            if job.unit is None or job.unit.key in compiled:
                continue
            compiled.add(job.unit.key)
            runner = self._runner(profile, job.unit, cancel_event)
            try:
                runner.compile()
                logger().debug(f"finish compiling unit {job.unit.key}")
            except CompileFailure as exc:
                logger().debug(f"compile failed for unit {job.unit.key}")
                errors[job.unit.key] = exc
        return errors

    def _run_jobs(
        self,
        jobs: List[CaseJob],
        profile: RuntimeProfile,
        compile_errors: Dict[str, CompileFailure],
        time_limit: int,
        mem_limit: int,
        cancel_event: threading.Event,
    ) -> List[TestResult]:

        def resolve(job: CaseJob) -> TestResult:
            return self._run_case(job, profile, compile_errors, time_limit,
                                  mem_limit, cancel_event)

        workers = min(self.config.case_workers, len(jobs))
        if workers <= 1:
            return [resolve(job) for job in jobs]
        with ThreadPoolExecutor(max_workers=workers,
                                thread_name_prefix="judge-case") as pool:
            futures = [pool.submit(resolve, job) for job in jobs]
            try:
                # results keep input order regardless of completion order
                return [future.result() for future in futures]
            except BaseException:
                cancel_event.set()
                for future in futures:
                    future.cancel()
                raise

    def _run_case(
        self,
        job: CaseJob,
        profile: RuntimeProfile,
        compile_errors: Dict[str, CompileFailure],
        time_limit: int,
        mem_limit: int,
        cancel_event: threading.Event,
    ) -> TestResult:
        case = job.case
        if job.early_result is not None:
            return job.early_result
        compile_error = compile_errors.get(job.unit.key)
        if compile_error is not None:
            return make_case_result(case,
                                    Status.CE,
                                    error=compile_error.diagnostics)
        runner = self._runner(profile, job.unit, cancel_event)
        try:
            output = runner.run(case.input, time_limit, mem_limit)
        except ExecutionTimeout as exc:
            return make_case_result(
                case,
                Status.TLE,
                error="Time limit exceeded",
                exec_time=exc.duration,
            )
        except MemoryLimitExceeded as exc:
            return make_case_result(
                case,
                Status.MLE,
                error=str(exc),
                exec_time=exc.duration,
                mem_usage=exc.mem_usage,
            )
        except RuntimeFailure as exc:
            return make_case_result(
                case,
                Status.RE,
                error=str(exc),
                exec_time=exc.duration,
                mem_usage=exc.mem_usage,
            )
        actual = normalize(output.stdout)
        status = Status.AC if compare(actual,
                                      case.expectedOutput) else Status.WA
        logger().debug(f"finish case {job.index}: {status.value}")
        return make_case_result(
            case,
            status,
            actual=actual,
            exec_time=output.duration,
            mem_usage=output.mem_usage,
        )

    def _runner(self, profile, unit, cancel_event) -> SubmissionRunner:
        return SubmissionRunner(
            profile=profile,
            unit=unit,
            sandbox_config=self.config,
            cancel_event=cancel_event,
            container_slot=self.container_slot,
        )
