import threading

import pytest

from dispatcher.config import SandboxConfig
from dispatcher.dispatcher import Dispatcher
from dispatcher.registry import load_registry
from runner.sandbox import OK, Result


def make_result(status=OK, stdout="", stderr="", duration=5.0, mem_usage=1.0,
                exit_code=0):
    return Result(
        status=status,
        stdout=stdout,
        stderr=stderr,
        duration=duration,
        mem_usage=mem_usage,
        exit_code=exit_code,
    )


@pytest.fixture
def sandbox_config(tmp_path):
    return SandboxConfig(
        docker_url="unix://fake.sock",
        workspace_root=tmp_path / "workspaces",
        host_workspace_root="",
        runtime_retries=2,
        retry_backoff=0,
        poll_interval=0.01,
        case_workers=1,
    )


@pytest.fixture
def registry(tmp_path):
    # a missing config file means default images
    return load_registry(tmp_path / "missing-runtime.json")


@pytest.fixture
def docker_dispatcher(registry, sandbox_config):
    return Dispatcher(registry=registry, sandbox_config=sandbox_config)


@pytest.fixture
def fake_sandbox(monkeypatch):
    """
    Replace the docker sandbox used by the step runner.

    Call the fixture with a handler ``handler(sandbox) -> Result``; every
    constructed sandbox is recorded in the returned list.
    """
    calls = []
    lock = threading.Lock()

    def install(handler):

        class DummySandbox:

            def __init__(self, **kwargs):
                self.__dict__.update(kwargs)
                with lock:
                    calls.append(self)

            def run(self):
                return handler(self)

        monkeypatch.setattr("runner.submission.Sandbox", DummySandbox)
        return calls

    return install
