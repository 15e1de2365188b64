import os
import shlex
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Dict

import pytest

from . import command_stub


class ExecContext:
    def __init__(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.environ = {}
        self.proc = None

    def tmp_file_path(self, filename) -> Path:
        "Return a Path object pointing to named file in tmp_dir."
        return Path(self.tmp_dir) / filename

    def tmp_file_content(self, filename):
        return self.tmp_file_path(filename).read_text()

    def set_env(self, environ: Dict[str, str]):
        self.environ.update(environ)

    def stub_command(self, cmdname, commands_map: Dict[str, str]):
        """Generate a fake command called cmdname.

        The cmdname accepts cmd line args exactly matching any dictionary key and
        prints the dictionary value to stdout.

        Eg this creates a fake npm command that works for exactly the cmdlines specified:

        stub_command('npm', {'run build': 'built', 'start': 'listening on $PORT'})
        """

        command_stub.generate(str(self.tmp_file_path(cmdname)), commands_map)

    def prepare_run_script(self, command: str) -> Path:
        """Create a shell script for running command and return script path."""
        script_name = "main.sh"
        script_path = self.tmp_file_path(script_name)
        with open(script_path, "w") as main_script:
            main_script.write("#!/bin/bash\n")
            # write env vars
            for env_name, env_value in self.environ.items():
                main_script.write(f"export {env_name}={shlex.quote(str(env_value))}\n")

            # adjust curdir and PATH
            # this ensures the stub commands get invoked and not any other commands available
            # elsewhere on PATH, also from commands running in another directory
            main_script.write('cd "$(dirname "$0")"\n')
            main_script.write('export PATH="$(pwd):$PATH"\n')

            # invoke main command
            main_script.write(
                command + " > ./output-stdout.txt 2> ./output-stderr.txt\n"
            )

            # save returncode
            main_script.write("echo $? > ./output-exitcode.txt\n")

        os.chmod(script_path, 0o700)
        return script_path

    def get_exitcode(self) -> int:
        return int(self.tmp_file_content("output-exitcode.txt").strip())

    def post_run(self, command, check: bool):
        exitcode = self.get_exitcode()
        if check and exitcode != 0:
            raise ValueError(
                f"Exit code {exitcode} running {command!r}.\n"
                f"Stdout: {self.get_stdout()}\nError: {self.get_stderr()}"
            )

    def run_local_command(self, command: str, check: bool = True):
        """Runs command (full path to any executable) in the exec context"""
        if self.proc:
            # various input/output filenames are not unique in the tempdir so we can only run once
            raise ValueError("ExecContext can only be run once")

        script_path = self.prepare_run_script(command)
        print("Running:", script_path)
        self.proc = subprocess.run([script_path], check=True)
        self.post_run(command, check)

    def run_launcher(self, args: str, check: bool = True):
        "Run the launcher with this interpreter, so it uses the same installed packages."
        self.run_local_command(f"{shlex.quote(sys.executable)} -m launcher {args}", check=check)

    def get_stdout(self) -> str:
        return self.tmp_file_content("output-stdout.txt")

    def get_stderr(self) -> str:
        return self.tmp_file_content("output-stderr.txt")

    def get_command_log(self, cmdname: str):
        path = self.tmp_file_path(cmdname + ".log")
        if not path.exists():
            return []
        return path.read_text().splitlines(keepends=False)

    def cleanup(self):
        shutil.rmtree(self.tmp_dir)


@pytest.fixture(scope="function")
def exec_context():
    ec = ExecContext()
    try:
        yield ec
    finally:
        ec.cleanup()


@pytest.fixture(scope="function")
def app_dir(tmp_path):
    "A minimal Next.js style app directory without a build"
    app = tmp_path / "app"
    (app / "pages").mkdir(parents=True)
    (app / "package.json").write_text('{"name": "app", "scripts": {"build": "next build"}}\n')
    (app / "pages" / "index.js").write_text("export default () => 'hi'\n")
    return app
