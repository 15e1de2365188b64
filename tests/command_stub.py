#!/usr/bin/env python

"""
Writes fake executables that stand in for npm, yarn etc. in end-to-end tests.

    command_stub.generate('bin/npm', {'run build': 'built', 'start': 'listening on $PORT'})

The generated bin/npm answers exactly the listed argument strings. The answer is printed
after $VAR expansion against the stub's own environment, which shows what the launcher
passed down:

    $ PORT=3000 bin/npm start
    listening on 3000

Every invocation is appended to bin/npm.log. Unknown argument strings are logged with an
ERROR: prefix and exit 1, like a failing build or a crashing server.
"""

import os
import sys
from typing import Dict, List

responses: Dict[str, str] = {}  # RESPONSES_PLACEHOLDER
PLACEHOLDER = "RESPONSES_" + "PLACEHOLDER"


def respond(stub_path: str, argv: List[str], known: Dict[str, str]) -> int:
    cmdline = " ".join([os.path.basename(stub_path), *argv])
    answers = {" ".join(key.split()): value for key, value in known.items()}
    answer = answers.get(" ".join(argv))

    with open(stub_path + ".log", "a") as log:
        log.write(cmdline + "\n" if answer is not None else f"ERROR: {cmdline}\n")

    if answer is None:
        print(f"unexpected invocation {cmdline!r}", file=sys.stderr)
        return 1
    print(os.path.expandvars(answer))
    return 0


def generate(out_filepath: str, responses_map: Dict[str, str]):
    with open(__file__) as f:
        lines = f.read().splitlines()
    if not any(line.endswith(PLACEHOLDER) for line in lines):
        raise ValueError("generate() must be called on command_stub itself", __file__)

    rendered = []
    for line in lines:
        if line.startswith("#!"):
            # run the stub with the interpreter running the tests
            line = "#!" + sys.executable
        elif line.endswith(PLACEHOLDER):
            line = f"responses = {responses_map!r}"
        rendered.append(line)

    with open(out_filepath, "w") as out:
        out.write("\n".join(rendered) + "\n")
    os.chmod(out_filepath, 0o775)


if __name__ == "__main__":
    sys.exit(respond(os.path.abspath(sys.argv[0]), sys.argv[1:], responses))
