from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Sequence

from .errors import GitCommandError, GitHubError, PatchyError


def run_git(repo: Path, args: Sequence[str]) -> subprocess.CompletedProcess:
    logging.debug("$ git %s", " ".join(args))
    return subprocess.run(
        ["git", "-C", str(repo)] + list(args),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )


def git(repo: Path, args: Sequence[str]) -> str:
    result = run_git(repo, args)
    if result.returncode != 0:
        raise GitCommandError(args, result.stdout, result.stderr, result.returncode)
    return result.stdout.rstrip()


def git_succeeds(repo: Path, args: Sequence[str]) -> bool:
    return run_git(repo, args).returncode == 0


def find_git_root(start: Path) -> Path:
    result = run_git(start, ["rev-parse", "--show-toplevel"])
    if result.returncode != 0:
        raise PatchyError(
            f"Failed to determine Git root directory from {start}: {result.stderr.strip()}"
        )
    return Path(result.stdout.strip())


def ref_exists(repo: Path, name: str) -> bool:
    return git_succeeds(repo, ["rev-parse", "--verify", "--quiet", name])


def list_remotes(repo: Path) -> List[str]:
    output = git(repo, ["remote"])
    return [line.strip() for line in output.splitlines() if line.strip()]


def list_branches(repo: Path) -> List[str]:
    output = git(repo, ["branch", "--format=%(refname:short)"])
    return [line.strip() for line in output.splitlines() if line.strip()]


def current_branch(repo: Path) -> str:
    return git(repo, ["rev-parse", "--abbrev-ref", "HEAD"])


def has_staged_changes(repo: Path) -> bool:
    return not git_succeeds(repo, ["diff", "--cached", "--quiet"])


def last_commit_message(repo: Path, commit: str | None = None) -> str:
    args = ["log", "--format=%B", "--max-count=1"]
    if commit:
        args.append(commit)
    return git(repo, args)


def commit(repo: Path, message: str) -> str:
    return git(repo, ["commit", "--message", f"patchy: {message}"])


def delete_remote_and_branch(repo: Path, remote: str, branch: str) -> None:
    git(repo, ["branch", "--delete", "--force", branch])
    git(repo, ["remote", "remove", remote])


def run_gh_command(args: Sequence[str]) -> str:
    logging.debug("$ gh %s", " ".join(args))
    result = subprocess.run(
        ["gh", *args],
        check=False,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    if result.returncode != 0:
        raise GitHubError(f"gh {' '.join(args)} failed: {result.stderr.strip()}")
    return result.stdout
