from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .config import validate_commit
from .errors import GitCommandError, PatchApplyFailed, PatchError
from .gitutils import git, git_succeeds, last_commit_message
from .naming import normalize_commit_msg

PATCH_SUFFIX = ".patch"


def patch_path(config_dir: Path, name: str) -> Path:
    return config_dir / f"{name}{PATCH_SUFFIX}"


def apply_patch(repo: Path, config_dir: Path, name: str) -> bool:
    """Apply `<config_dir>/<name>.patch` as a signed-off commit.

    A missing patch file is logged and skipped (returns False). A patch that
    does not apply is aborted and raised as `PatchApplyFailed`.
    """
    path = patch_path(config_dir, name)
    if not path.is_file():
        logging.warning("Could not find patch %s, skipping", name)
        return False

    try:
        git(repo, ["am", "--keep-cr", "--signoff", str(path)])
    except GitCommandError as exc:
        if not git_succeeds(repo, ["am", "--abort"]):
            logging.error("git am --abort failed after patch %s", name)
        raise PatchApplyFailed(f"Could not apply patch {name}\n{exc}") from exc

    subject = last_commit_message(repo).splitlines()
    logging.info("Applied patch %s %s", name, subject[0] if subject else "")
    return True


def generate_patch(
    repo: Path,
    config_dir: Path,
    commit: str,
    filename: Optional[str] = None,
) -> Path:
    commit = validate_commit(commit)
    if not config_dir.exists():
        logging.info("Config directory %s does not exist, creating it...", config_dir)
        config_dir.mkdir(parents=True, exist_ok=True)

    # custom name, then the commit message, then the hash itself
    name = filename
    if not name:
        try:
            name = normalize_commit_msg(last_commit_message(repo, commit).splitlines()[0])
        except (GitCommandError, IndexError):
            name = commit
    name = name or commit

    path = patch_path(config_dir, name)
    try:
        git(repo, ["format-patch", "-1", commit, "--output", str(path)])
    except GitCommandError as exc:
        raise PatchError(f"Could not get patch output for patch {commit}\n{exc}") from exc
    logging.info("Created patch file at %s", path)
    return path
