import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

# sandbox token
SANDBOX_TOKEN = os.getenv(
    'SANDBOX_TOKEN',
    'KoNoSandboxDa',
)
DOCKER_URL = os.getenv(
    'DOCKER_URL',
    'unix://var/run/docker.sock',
)
WORKSPACE_ROOT = Path(
    os.getenv(
        'WORKSPACE_ROOT',
        str(Path(tempfile.gettempdir()) / 'code-execution'),
    ))
# where WORKSPACE_ROOT lives on the docker host, if the judge is containerized
HOST_WORKSPACE_ROOT = os.getenv('HOST_WORKSPACE_ROOT', '')

# ============================================================
# Per-step limits
# ============================================================
DEFAULT_TIME_LIMIT = int(os.getenv('DEFAULT_TIME_LIMIT', '5000'))  # ms
DEFAULT_MEM_LIMIT = int(os.getenv('DEFAULT_MEM_LIMIT', '256'))  # MB
# compile must be done in 20 seconds
COMPILE_TIME_LIMIT = int(os.getenv('COMPILE_TIME_LIMIT', '20000'))  # ms
COMPILE_MEM_LIMIT = int(os.getenv('COMPILE_MEM_LIMIT', '1024'))  # MB
SANDBOX_CPU_PERIOD = int(os.getenv('SANDBOX_CPU_PERIOD', '100000'))
SANDBOX_CPU_QUOTA = int(os.getenv('SANDBOX_CPU_QUOTA', '100000'))
SANDBOX_PIDS_LIMIT = int(os.getenv('SANDBOX_PIDS_LIMIT', '64'))
# stdout / stderr are truncated to this many bytes
OUTPUT_LIMIT = int(os.getenv('OUTPUT_LIMIT', str(64 * 1024)))
WAIT_POLL_INTERVAL = float(os.getenv('WAIT_POLL_INTERVAL', '0.2'))  # sec.

# ============================================================
# Infrastructure retries
# ============================================================
RUNTIME_RETRIES = int(os.getenv('RUNTIME_RETRIES', '2'))
RUNTIME_RETRY_BACKOFF = float(os.getenv('RUNTIME_RETRY_BACKOFF',
                                        '0.5'))  # sec.

# ============================================================
# Scheduling
# ============================================================
MAX_CASE_WORKERS = 8
CASE_WORKERS = min(max(int(os.getenv('CASE_WORKERS', '1')), 1),
                   MAX_CASE_WORKERS)
MAX_CONTAINER_NUMBER = int(os.getenv('MAX_CONTAINER_NUMBER', '8'))

_RUNTIME_CONFIG_PATH = Path(
    os.getenv('RUNTIME_CONFIG', '.config/runtime.json'))


def _load_json_config(path: Path) -> dict:
    try:
        with path.open() as f:
            return json.load(f)
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError:
        return {}


def get_runtime_config(config_path: str | Path | None = None) -> dict:
    path = Path(config_path) if config_path else _RUNTIME_CONFIG_PATH
    cfg = _load_json_config(path) if path else {}
    docker_url_env = os.getenv('DOCKER_URL')
    if docker_url_env:
        cfg['docker_url'] = docker_url_env
    cfg.setdefault('docker_url', DOCKER_URL)
    cfg.setdefault('image', {})
    return cfg


@dataclass(frozen=True)
class SandboxConfig:
    docker_url: str = DOCKER_URL
    workspace_root: Path = WORKSPACE_ROOT
    host_workspace_root: str = HOST_WORKSPACE_ROOT
    default_time_limit: int = DEFAULT_TIME_LIMIT
    default_mem_limit: int = DEFAULT_MEM_LIMIT
    compile_time_limit: int = COMPILE_TIME_LIMIT
    compile_mem_limit: int = COMPILE_MEM_LIMIT
    cpu_period: int = SANDBOX_CPU_PERIOD
    cpu_quota: int = SANDBOX_CPU_QUOTA
    pids_limit: int = SANDBOX_PIDS_LIMIT
    output_limit: int = OUTPUT_LIMIT
    poll_interval: float = WAIT_POLL_INTERVAL
    runtime_retries: int = RUNTIME_RETRIES
    retry_backoff: float = RUNTIME_RETRY_BACKOFF
    case_workers: int = CASE_WORKERS
    max_container_number: int = MAX_CONTAINER_NUMBER

    @classmethod
    def from_env(cls, config_path: str | Path | None = None):
        cfg = get_runtime_config(config_path)
        return cls(
            docker_url=cfg['docker_url'],
            workspace_root=Path(cfg.get('workspace_root', WORKSPACE_ROOT)),
            host_workspace_root=cfg.get('host_workspace_root',
                                        HOST_WORKSPACE_ROOT),
        )
