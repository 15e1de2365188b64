# Startup sequence for the container: load variables, build if needed, start the server

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from . import build_marker, env_file, util
from .config import LauncherConfig

SKIPPED = "skipped"
SUCCEEDED = "succeeded"
FAILED = "failed"

# same code a shell reports for a missing executable
COMMAND_NOT_RUNNABLE = 127


@dataclass
class LoadResult:
    environ: Dict[str, str]  # environment handed to the build and start commands
    variables: Optional[Dict[str, str]] = None  # None when there was no variable file
    diagnostics: Optional[List[str]] = None


@dataclass
class BuildResult:
    outcome: str
    status: build_marker.BuildStatus
    returncode: Optional[int] = None

    @property
    def failed(self) -> bool:
        return self.outcome == FAILED


class BuildFailed(Exception):
    def __init__(self, build_result: BuildResult):
        super().__init__(f"Build command failed with returncode {build_result.returncode}")
        self.build_result = build_result


def load_phase(config: LauncherConfig, base_environ: Mapping[str, str]) -> LoadResult:
    variables = env_file.read_env_file(config.env_file_path)
    environ = env_file.merge_environ(base_environ, variables)
    environ.setdefault("PORT", str(config.port))

    if variables is None:
        return LoadResult(environ=environ)

    diagnostics = env_file.matching_variables(environ, config.diagnostic_patterns)
    logging.info(
        "Variables matching %r (%s):", config.diagnostic_patterns, len(diagnostics)
    )
    for line in diagnostics:
        logging.info("  %s", line)
    return LoadResult(environ=environ, variables=variables, diagnostics=diagnostics)


def build_phase(config: LauncherConfig, environ: Mapping[str, str]) -> BuildResult:
    status = build_marker.get_build_status(config.app_dir, inspect=config.rebuild_stale)
    logging.info(
        "Build artifact %r is %s", build_marker.artifact_dir(config.app_dir), status.state
    )

    if not build_marker.needs_build(status, config.rebuild_stale):
        logging.info("Skipping build")
        return BuildResult(outcome=SKIPPED, status=status)

    try:
        returncode = util.run_command(
            config.build_command, env=environ, cwd=config.app_dir
        ).returncode
    except OSError:
        logging.exception("Could not run build command %r", config.build_command)
        returncode = COMMAND_NOT_RUNNABLE

    if returncode != 0:
        logging.error(
            "Build command %r failed with returncode %r", config.build_command, returncode
        )
        return BuildResult(outcome=FAILED, status=status, returncode=returncode)

    if build_marker.artifact_exists(config.app_dir):
        build_marker.write_manifest(config.app_dir, config.build_command)
    else:
        logging.warning(
            "Build command %r succeeded but did not create %r",
            config.build_command,
            build_marker.artifact_dir(config.app_dir),
        )
    return BuildResult(outcome=SUCCEEDED, status=status, returncode=returncode)


def launch_phase(config: LauncherConfig, environ: Mapping[str, str]) -> int:
    """Start the server. With exec_server this replaces the current process and never returns."""
    if not config.exec_server:
        return util.run_command(config.start_command, env=environ, cwd=config.app_dir).returncode

    util.exec_command(config.start_command, env=environ, cwd=config.app_dir)
    return 0


def reconcile(config: LauncherConfig, base_environ: Optional[Mapping[str, str]] = None) -> int:
    """Run the three phases once, in order. Returns the server's returncode when not exec'ing."""
    if base_environ is None:
        base_environ = os.environ

    with util.log_group("Loading variables"):
        load_result = load_phase(config, base_environ)

    with util.log_group("Checking build"):
        build_result = build_phase(config, load_result.environ)

    if build_result.failed:
        if config.halt_on_build_failure:
            raise BuildFailed(build_result)
        logging.warning("Starting server despite failed build")

    with util.log_group("Starting server"):
        return launch_phase(config, load_result.environ)
