#!/usr/bin/env python3
import os
import re
import shutil
import subprocess
import sys
import tempfile
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console

console = Console()

app = typer.Typer()

REPO_ROOT = Path(__file__).parent.parent
PYPROJECT = REPO_ROOT / "pyproject.toml"
VERSION_RE = re.compile(r'^version = "([^"]+)"$', re.MULTILINE)


@contextmanager
def chdir(path: str):
    curdir = Path(os.curdir).absolute()
    try:
        os.chdir(REPO_ROOT / path)
        yield
    finally:
        os.chdir(curdir)


def info(msg):
    console.print(msg, style="blue")


def error(msg):
    console.print(msg, style="red")


@app.command()
def run_tests():
    info("Running tests")
    with chdir("."):
        subprocess.run([sys.executable, "-m", "pytest", "tests", "-s"], check=True)


@app.command(help="Build a wheel into dist/")
def build_dist():
    info("Building dist/")
    with chdir("."):
        shutil.rmtree("dist", ignore_errors=True)
        output = subprocess.check_output(
            [sys.executable, "-m", "pip", "wheel", "--no-deps", "-w", "dist", "."],
            encoding="utf-8",
        )
        print(output)


@app.command(help="Scaffold the sample app with this checkout and build its docker image")
def build_sample_image(image_name: str = "next-runtime-launcher-sample:dev"):
    with tempfile.TemporaryDirectory() as build_dir:
        shutil.copytree(REPO_ROOT / "sample-app", build_dir, dirs_exist_ok=True)
        # install the launcher from this checkout instead of the index
        shutil.copytree(
            REPO_ROOT,
            Path(build_dir) / "launcher-src",
            ignore=shutil.ignore_patterns(".git", "dist", "sample-app", "__pycache__"),
        )
        subprocess.run(
            [
                sys.executable,
                "-m",
                "launcher",
                "scaffold",
                build_dir,
                "--overwrite",
                "--launcher-requirement",
                "./launcher-src",
            ],
            check=True,
        )
        # the pip install runs before the sources are copied, so copy the launcher first
        dockerfile_path = Path(build_dir) / "Dockerfile"
        dockerfile = dockerfile_path.read_text()
        dockerfile = dockerfile.replace(
            "RUN python3 -m venv", "COPY launcher-src ./launcher-src\nRUN python3 -m venv", 1
        )
        dockerfile_path.write_text(dockerfile)

        info(f"Building {image_name}")
        subprocess.run(["docker", "build", "-t", image_name, build_dir], check=True)


@app.command()
def update_version(version_tag: str):
    text = PYPROJECT.read_text(encoding="utf-8")
    match = VERSION_RE.search(text)
    if not match:
        error(f"No version found in {PYPROJECT}")
        sys.exit(1)
    info(f"Updating version from {match.group(1)} to {version_tag}")
    PYPROJECT.write_text(VERSION_RE.sub(f'version = "{version_tag}"', text, count=1), encoding="utf-8")


@app.command()
def create_rc(
    version_tag: str,
    check_workdir: bool = True,
    execute_tests: bool = True,
):
    if check_workdir:
        ensure_clean_workdir()
    branch = ensure_in_branch()
    info(f"Preparing a new RC in {branch}")

    if not re.match(r"^[0-9.]+(rc[0-9]+)?$", version_tag):
        error(f"Invalid version tag {version_tag}")
        sys.exit(1)

    update_version(version_tag)
    if execute_tests:
        run_tests()
    build_dist()
    info(f"Updated working directory for {version_tag}")


def ensure_clean_workdir():
    proc = subprocess.run(["git", "status", "--porcelain"], capture_output=True, check=False)
    if proc.stdout or proc.stderr:
        error("ERROR: Git working directory not clean:")
        error((proc.stdout + proc.stderr).decode("utf-8"))
        sys.exit(1)


def ensure_in_branch():
    branch = get_branch_name()
    if branch == "main":
        error("ERROR: Not in branch")
        sys.exit(1)
    return branch


def get_branch_name():
    proc = subprocess.run(
        ["git", "rev-parse", "--abbrev-ref", "HEAD"], capture_output=True, check=True
    )
    return proc.stdout.decode("utf-8").strip()


if __name__ == "__main__":
    try:
        app()
    except subprocess.CalledProcessError as err:
        error("Subprocess failed")
        error(err.args)
        for stream in (err.output, err.stderr):
            if stream:
                error(stream.decode("utf-8") if isinstance(stream, bytes) else stream)
        raise
