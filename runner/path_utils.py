from __future__ import annotations

from pathlib import Path
from dispatcher import config as dispatcher_config


class PathTranslator:
    """
    Translate workspace paths between this process's view and the docker
    host's view, for when the judge itself runs inside a container that
    talks to the host daemon.
    """

    def __init__(
        self,
        workspace_root: str | Path | None = None,
        host_root: str | Path | None = None,
    ):
        self.workspace_root = Path(
            workspace_root
            or dispatcher_config.WORKSPACE_ROOT).expanduser().absolute()
        self.host_root = Path(host_root or dispatcher_config.HOST_WORKSPACE_ROOT
                              or self.workspace_root).expanduser()

    def to_host(self, path: str | Path) -> Path:
        """
        Convert a local workspace path to the host path used in docker binds.
        Paths outside the workspace root are returned unchanged.
        """
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = (self.workspace_root / p).absolute()
        try:
            rel = p.relative_to(self.workspace_root)
        except ValueError:
            return p
        return self.host_root / rel
