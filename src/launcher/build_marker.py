# Tracks whether <app_dir>/.next holds a usable build

import datetime
import hashlib
import json
import logging
import os
import os.path
from dataclasses import dataclass
from typing import List, Optional

ARTIFACT_DIR_NAME = ".next"
MANIFEST_NAME = "launcher-build.json"

# excluded from the source hash
IGNORED_NAMES = {ARTIFACT_DIR_NAME, "node_modules", ".git", ".env"}

MISSING = "missing"  # no .next directory
UNVERIFIED = "unverified"  # .next present, but not built by us (no readable manifest)
CURRENT = "current"  # manifest matches the current sources
STALE = "stale"  # manifest written for different sources
PRESENT = "present"  # .next present, contents not inspected


@dataclass(frozen=True)
class BuildStatus:
    state: str
    manifest: Optional[dict] = None
    source_hash: Optional[str] = None


def artifact_dir(app_dir: str) -> str:
    return os.path.join(app_dir, ARTIFACT_DIR_NAME)


def manifest_path(app_dir: str) -> str:
    return os.path.join(artifact_dir(app_dir), MANIFEST_NAME)


def artifact_exists(app_dir: str) -> bool:
    return os.path.isdir(artifact_dir(app_dir))


def compute_source_hash(app_dir: str) -> str:
    """sha1 over relative paths and contents of the app sources, in a stable order."""
    digest = hashlib.sha1()
    for dirpath, dirnames, filenames in os.walk(app_dir):
        dirnames[:] = sorted(name for name in dirnames if name not in IGNORED_NAMES)
        for filename in sorted(filenames):
            if filename in IGNORED_NAMES:
                continue
            filepath = os.path.join(dirpath, filename)
            relpath = os.path.relpath(filepath, app_dir)
            digest.update(relpath.replace(os.sep, "/").encode("utf-8"))
            digest.update(b"\0")
            with open(filepath, "rb") as f:
                for chunk in iter(lambda: f.read(65536), b""):
                    digest.update(chunk)
            digest.update(b"\0")
    return digest.hexdigest()


def read_manifest(app_dir: str) -> Optional[dict]:
    path = manifest_path(app_dir)
    if not os.path.exists(path):
        return None
    try:
        with open(path, encoding="utf-8") as f:
            manifest = json.load(f)
    except (OSError, ValueError):
        logging.warning("Ignoring unreadable build manifest %r", path, exc_info=True)
        return None
    if not isinstance(manifest, dict) or "source_hash" not in manifest:
        logging.warning("Ignoring build manifest without source_hash %r", path)
        return None
    return manifest


def write_manifest(app_dir: str, build_command: List[str]) -> dict:
    "Record a completed build. Only call this after the build command succeeded."
    manifest = {
        "completed_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "source_hash": compute_source_hash(app_dir),
        "build_command": build_command,
    }
    path = manifest_path(app_dir)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2)
    logging.info("Wrote build manifest %r", path)
    return manifest


def get_build_status(app_dir: str, inspect: bool = True) -> BuildStatus:
    """With inspect=False only the existence of .next is checked, nothing is hashed."""
    if not artifact_exists(app_dir):
        return BuildStatus(MISSING)
    if not inspect:
        return BuildStatus(PRESENT)

    manifest = read_manifest(app_dir)
    if manifest is None:
        return BuildStatus(UNVERIFIED)

    source_hash = compute_source_hash(app_dir)
    if manifest["source_hash"] == source_hash:
        return BuildStatus(CURRENT, manifest=manifest, source_hash=source_hash)
    return BuildStatus(STALE, manifest=manifest, source_hash=source_hash)


def needs_build(status: BuildStatus, rebuild_stale: bool) -> bool:
    """A missing artifact is always built. Anything else found on disk is trusted
    unless rebuild_stale is set, in which case only a CURRENT build is kept."""
    if status.state == MISSING:
        return True
    if rebuild_stale:
        return status.state != CURRENT
    return False
