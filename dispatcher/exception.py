__all__ = [
    "SandboxError",
    "UnsupportedLanguage",
    "CompileFailure",
    "ExecutionTimeout",
    "RuntimeFailure",
    "MemoryLimitExceeded",
    "RuntimeUnavailable",
    "ExecutionCancelled",
    "CleanupFailure",
]


class SandboxError(Exception):
    pass


class UnsupportedLanguage(SandboxError, ValueError):

    def __init__(self, language):
        super().__init__(f"unsupported language: {language!r}")
        self.language = language


class CompileFailure(SandboxError):

    def __init__(self, diagnostics: str):
        super().__init__(diagnostics or "compilation failed")
        self.diagnostics = diagnostics or "compilation failed"


class ExecutionTimeout(SandboxError):

    def __init__(self, time_limit: int, duration: float = -1):
        super().__init__(f"time limit exceeded ({time_limit} ms)")
        self.time_limit = time_limit
        self.duration = duration


class RuntimeFailure(SandboxError):
    """The submitted program exited with a non-zero status."""

    def __init__(self,
                 stderr: str,
                 exit_code: int = 1,
                 duration: float = -1,
                 mem_usage: float = 0):
        super().__init__(stderr or f"process exited with code {exit_code}")
        self.stderr = stderr
        self.exit_code = exit_code
        self.duration = duration
        self.mem_usage = mem_usage


class MemoryLimitExceeded(RuntimeFailure):
    pass


class RuntimeUnavailable(SandboxError):
    """The container runtime could not start a sandbox."""


class ExecutionCancelled(SandboxError):
    pass


class CleanupFailure(SandboxError):
    """Only ever logged; never raised to callers."""
