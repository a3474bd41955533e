from __future__ import annotations

import socket
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

import docker
from docker.errors import DockerException
from requests.exceptions import (
    ConnectionError as RequestsConnectionError,
    ReadTimeout,
    RequestException,
)

from dispatcher import config
from dispatcher.exception import ExecutionCancelled, RuntimeUnavailable
from dispatcher.utils import logger

# sandbox exit statuses
OK = "OK"
TLE = "TLE"
MLE = "MLE"
RE = "RE"

_MB = 1024 * 1024


@dataclass
class Result:
    status: str
    stdout: str
    stderr: str
    duration: float  # ms
    mem_usage: float  # MB
    exit_code: int


@dataclass
class Sandbox:
    """One ephemeral container running one command.

    The container has no network, a read-only root filesystem, the given
    binds, a memory ceiling and a CPU quota. It is always removed before
    :meth:`run` returns or raises.
    """
    image: str
    command: Sequence[str]
    binds: Dict[str, Dict[str, str]]
    time_limit: int  # ms
    mem_limit: int  # MB
    stdin: str = ""
    working_dir: str = "/code"
    docker_url: str = config.DOCKER_URL
    cpu_period: int = config.SANDBOX_CPU_PERIOD
    cpu_quota: int = config.SANDBOX_CPU_QUOTA
    pids_limit: int = config.SANDBOX_PIDS_LIMIT
    output_limit: int = config.OUTPUT_LIMIT
    poll_interval: float = config.WAIT_POLL_INTERVAL
    cancel_event: Optional[threading.Event] = field(default=None,
                                                    repr=False)

    def run(self) -> Result:
        try:
            client = docker.APIClient(base_url=self.docker_url)
        except DockerException as exc:
            raise RuntimeUnavailable(
                f"docker daemon unreachable: {exc}") from exc
        try:
            container = self._create(client)
            try:
                return self._execute(client, container)
            finally:
                self._teardown(client, container)
        finally:
            client.close()

    def _create(self, client) -> dict:
        host_config = client.create_host_config(
            binds=self.binds,
            network_mode="none",
            mem_limit=f"{max(self.mem_limit, 1)}m",
            memswap_limit=f"{max(self.mem_limit, 1)}m",
            cpu_period=self.cpu_period,
            cpu_quota=self.cpu_quota,
            pids_limit=self.pids_limit,
            read_only=True,
            tmpfs={"/tmp": "rw,noexec,nosuid,size=64m"},
            cap_drop=["ALL"],
            security_opt=["no-new-privileges"],
        )
        try:
            return client.create_container(
                image=self.image,
                command=list(self.command),
                volumes=[b["bind"] for b in self.binds.values()],
                network_disabled=True,
                working_dir=self.working_dir,
                host_config=host_config,
                stdin_open=True,
                stdin_once=True,
                tty=False,
            )
        except (DockerException, RequestException) as exc:
            raise RuntimeUnavailable(
                f"failed to create container from {self.image}: {exc}"
            ) from exc

    def _execute(self, client, container) -> Result:
        try:
            # attach before start so no input is lost
            sock = client.attach_socket(container,
                                        params={
                                            "stdin": 1,
                                            "stream": 1,
                                        })
            client.start(container)
        except (DockerException, RequestException) as exc:
            raise RuntimeUnavailable(
                f"failed to start container: {exc}") from exc
        started = time.monotonic()
        deadline = started + self.time_limit / 1000
        self._write_stdin(sock, deadline)
        # fast programs may exit before the first poll slice ends
        peak_mem = self._memory_usage(client, container)
        exit_status, peak_mem = self._wait(client, container, deadline,
                                           peak_mem)
        duration = (time.monotonic() - started) * 1000
        try:
            return self._collect(client, container, exit_status, duration,
                                 peak_mem)
        except (DockerException, RequestException) as exc:
            raise RuntimeUnavailable(
                f"lost contact with container: {exc}") from exc

    def _collect(self, client, container, exit_status, duration,
                 peak_mem) -> Result:
        if exit_status is None:
            self._kill(client, container)
            logger().debug(f"container killed after {duration:.0f} ms")
            status, exit_code = TLE, -1
        else:
            exit_code = exit_status.get("StatusCode", 1)
            state = client.inspect_container(container).get("State", {})
            if state.get("OOMKilled"):
                status = MLE
            elif exit_code != 0:
                status = RE
            else:
                status = OK
        return Result(
            status=status,
            stdout=self._logs(client, container, stdout=True),
            stderr=self._logs(client, container, stdout=False),
            duration=duration,
            mem_usage=peak_mem,
            exit_code=exit_code,
        )

    def _write_stdin(self, sock, deadline: float):
        raw = getattr(sock, "_sock", sock)
        try:
            raw.settimeout(max(deadline - time.monotonic(), 0.001))
            if self.stdin:
                raw.sendall(self.stdin.encode("utf-8"))
            raw.shutdown(socket.SHUT_WR)
        except OSError as exc:
            # the program may exit, or stall, before consuming its input
            logger().debug(f"stdin not fully delivered: {exc}")
        finally:
            sock.close()

    def _wait(self, client, container, deadline: float,
              peak_mem: float = 0.0):
        while True:
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise ExecutionCancelled("execution cancelled by caller")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None, peak_mem
            try:
                exit_status = client.wait(container,
                                          timeout=min(self.poll_interval,
                                                      remaining))
                return exit_status, peak_mem
            except (ReadTimeout, RequestsConnectionError):
                peak_mem = max(peak_mem, self._memory_usage(client, container))

    def _memory_usage(self, client, container) -> float:
        try:
            stats = client.stats(container, stream=False, one_shot=True)
        except (DockerException, RequestException):
            return 0.0
        memory = (stats or {}).get("memory_stats") or {}
        usage = memory.get("max_usage") or memory.get("usage") or 0
        return usage / _MB

    def _logs(self, client, container, stdout: bool) -> str:
        raw = client.logs(container, stdout=stdout, stderr=not stdout)
        if len(raw) > self.output_limit:
            omitted = len(raw) - self.output_limit
            return (raw[:self.output_limit].decode("utf-8", "ignore") +
                    f"\n... [output truncated, {omitted} bytes omitted]")
        return raw.decode("utf-8", "ignore")

    def _kill(self, client, container):
        try:
            client.kill(container)
        except (DockerException, RequestException) as exc:
            # it may have exited on its own right at the deadline
            logger().debug(f"kill failed: {exc}")

    def _teardown(self, client, container):
        try:
            client.remove_container(container, v=True, force=True)
        except Exception as exc:
            logger().warning(
                f"failed to remove container {container.get('Id')}: {exc}")
