import hashlib
import shutil
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator

from . import config
from .exception import CleanupFailure
from .utils import logger


@dataclass(frozen=True)
class Unit:
    """One prepared source file plus its private build directory."""
    key: str
    src_dir: Path
    build_dir: Path
    source_path: Path


@dataclass
class Workspace:
    execution_id: str
    path: Path
    units: Dict[str, Unit] = field(default_factory=dict)

    def materialize(self, source: str, filename: str) -> Unit:
        # identical sources share one unit, so they are written and compiled once
        key = hashlib.sha1(
            f'{filename}\0{source}'.encode('utf-8')).hexdigest()[:12]
        unit = self.units.get(key)
        if unit is not None:
            return unit
        unit_dir = self.path / f'unit-{key}'
        src_dir = unit_dir / 'src'
        build_dir = unit_dir / 'build'
        src_dir.mkdir(parents=True)
        build_dir.mkdir()
        # sandboxes run without CAP_DAC_OVERRIDE, so the compiler needs
        # explicit write permission on the build output directory
        build_dir.chmod(0o777)
        source_path = src_dir / filename
        source_path.write_text(source, encoding='utf-8')
        unit = Unit(
            key=key,
            src_dir=src_dir,
            build_dir=build_dir,
            source_path=source_path,
        )
        self.units[key] = unit
        return unit


class WorkspaceManager:

    def __init__(self, root: Path | str | None = None):
        self.root = Path(root) if root else config.WORKSPACE_ROOT

    def acquire(self) -> Workspace:
        execution_id = uuid.uuid4().hex
        path = self.root / execution_id
        self.root.mkdir(parents=True, exist_ok=True)
        # never reuse an existing directory
        path.mkdir()
        logger().debug(f'workspace acquired [id={execution_id}]: {path}')
        return Workspace(execution_id=execution_id, path=path)

    def release(self, workspace: Workspace):
        try:
            shutil.rmtree(workspace.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            err = CleanupFailure(
                f'failed to remove workspace {workspace.path}: {exc}')
            logger().warning(f'{err} [id={workspace.execution_id}]')
            return
        logger().debug(f'workspace released [id={workspace.execution_id}]')

    @contextmanager
    def scoped(self) -> Iterator[Workspace]:
        workspace = self.acquire()
        try:
            yield workspace
        finally:
            self.release(workspace)
