import os.path
from dataclasses import dataclass, field
from typing import List, Optional

from . import env_file, util

DEFAULT_APP_DIR = "/app"
DEFAULT_BUILD_COMMAND = "npm run build"
DEFAULT_START_COMMAND = "npm start"
DEFAULT_PORT = 3000


@dataclass(frozen=True)
class LauncherConfig:
    "Everything the reconciler needs, passed explicitly instead of read from globals"
    app_dir: str = DEFAULT_APP_DIR
    env_file: Optional[str] = None  # defaults to <app_dir>/.env
    build_command: List[str] = field(
        default_factory=lambda: util.parse_command(DEFAULT_BUILD_COMMAND)
    )
    start_command: List[str] = field(
        default_factory=lambda: util.parse_command(DEFAULT_START_COMMAND)
    )
    port: int = DEFAULT_PORT
    diagnostic_patterns: List[str] = field(
        default_factory=lambda: list(env_file.DEFAULT_DIAGNOSTIC_PATTERNS)
    )
    rebuild_stale: bool = False
    halt_on_build_failure: bool = False
    exec_server: bool = True

    @property
    def env_file_path(self) -> str:
        return self.env_file or os.path.join(self.app_dir, ".env")


def make_config(
    app_dir: str,
    env_file_path: Optional[str],
    build_command: str,
    start_command: str,
    port: int,
    diagnostic_patterns: List[str],
    rebuild_stale: bool,
    halt_on_build_failure: bool,
    exec_server: bool,
) -> LauncherConfig:
    if not 0 < port < 65536:
        raise ValueError("Port must be between 1 and 65535", port)
    return LauncherConfig(
        app_dir=os.path.abspath(app_dir),
        env_file=env_file_path,
        build_command=util.parse_command(build_command),
        start_command=util.parse_command(start_command),
        port=port,
        diagnostic_patterns=diagnostic_patterns or list(env_file.DEFAULT_DIAGNOSTIC_PATTERNS),
        rebuild_stale=rebuild_stale,
        halt_on_build_failure=halt_on_build_failure,
        exec_server=exec_server,
    )
