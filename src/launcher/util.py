import logging
import os
import shlex
import subprocess
from contextlib import contextmanager
from typing import List, Mapping, Optional

import click


def run_command(args: List[str], env: Mapping[str, str], cwd: Optional[str] = None):
    """Run args to completion with the given environment, streaming output to our stdout/stderr.

    The caller decides what a non-zero returncode means, so check is never set here.
    """
    logging.info("Running %r in %r", args, os.path.abspath(cwd or os.curdir))
    proc = subprocess.run(args, env=dict(env), cwd=cwd, check=False)
    logging.info("%r exited with returncode %r", args[0], proc.returncode)
    return proc


def exec_command(args: List[str], env: Mapping[str, str], cwd: Optional[str] = None):
    "Replace the current process with args. Does not return."
    if cwd:
        os.chdir(cwd)
    logging.info("Exec %r in %r", args, os.path.abspath(os.curdir))
    # flush everything written so far, exec discards our buffers
    for handler in logging.getLogger().handlers:
        handler.flush()
    os.execvpe(args[0], args, dict(env))


def parse_command(command: str) -> List[str]:
    args = shlex.split(command or "")
    if not args:
        raise ValueError("Empty command", command)
    return args


def parse_csv(ctx, param, value: Optional[str]) -> List[str]:  # pylint: disable=unused-argument
    "click callback for comma separated values, eg --diagnostic-patterns NEXT_PUBLIC,DB_"
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def app_dir_option():
    "reusable click.option"
    return click.option(
        "--app-dir",
        type=click.Path(file_okay=False),
        default="/app",
        show_default=True,
        envvar="LAUNCHER_APP_DIR",
        help="Root directory of the Next.js application.",
    )


@contextmanager
def log_group(title: str):
    try:
        print(f"\n==> {title}", flush=True)
        yield
    finally:
        print(f"<== {title}", flush=True)
