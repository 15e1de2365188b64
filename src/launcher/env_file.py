# Read the runtime variable file (usually /app/.env, mounted by the operator)

import logging
import os
import re
from typing import Dict, Iterable, List, Mapping, Optional

# one pattern for client exposed variables, one for the private credential convention
DEFAULT_DIAGNOSTIC_PATTERNS = ["NEXT_PUBLIC", "DB_"]

KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def parse_env_lines(lines: Iterable[str]) -> Dict[str, str]:
    """Parse KEY=VALUE lines. Malformed lines are skipped, not fatal."""
    variables = {}
    for lineno, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()

        if "=" not in line:
            logging.warning("Skipping line %r: expected KEY=VALUE", lineno)
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not KEY_RE.match(key):
            logging.warning("Skipping line %r: invalid variable name %r", lineno, key)
            continue
        variables[key] = _unquote(value.strip())
    return variables


def read_env_file(env_file_path: str) -> Optional[Dict[str, str]]:
    """Returns the parsed variables, or None if there is no file at env_file_path.

    A file that exists but cannot be read yields no variables. Bytes that are not
    utf-8 are replaced with U+FFFD, the rest of the line is kept.
    """
    if not os.path.isfile(env_file_path):
        logging.info("No variable file at %r, skipping", env_file_path)
        return None

    try:
        with open(env_file_path, encoding="utf-8", errors="replace") as env_file:
            contents = env_file.read()
    except OSError:
        logging.exception("Could not read variable file %r, loading nothing", env_file_path)
        return {}

    variables = parse_env_lines(contents.splitlines())
    logging.info("Loaded %s variables from %r", len(variables), env_file_path)
    return variables


def merge_environ(
    base: Mapping[str, str], variables: Optional[Mapping[str, str]]
) -> Dict[str, str]:
    """Environment for child processes: base overlaid with the file variables.

    Neither argument is modified.
    """
    environ = dict(base)
    if variables:
        environ.update(variables)
    return environ


def matching_variables(environ: Mapping[str, str], patterns: List[str]) -> List[str]:
    "NAME=VALUE lines for variables whose name contains any of patterns, ignoring case."
    lowered = [pattern.lower() for pattern in patterns]
    return [
        f"{name}={environ[name]}"
        for name in sorted(environ)
        if any(pattern in name.lower() for pattern in lowered)
    ]
