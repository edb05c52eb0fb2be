from __future__ import annotations

import logging
from pathlib import Path

from .errors import GitCommandError, MergeConflict, MergeError
from .fetch import RemoteBranch
from .gitutils import commit, delete_remote_and_branch, git, has_staged_changes


def merge(repo: Path, branch: str, message: str) -> bool:
    """Squash-merge `branch` into HEAD and commit it.

    Returns False when the merge staged nothing, in which case no commit is made.
    """
    logging.debug("Merging branch %s", branch)
    try:
        git(repo, ["merge", "--squash", branch])
    except GitCommandError as exc:
        git(repo, ["reset", "--hard"])
        raise MergeConflict(f"failed to merge {branch}\n{exc}") from exc

    # --squash never commits on its own
    if not has_staged_changes(repo):
        logging.info("Nothing to commit after merging %s", branch)
        return False
    try:
        commit(repo, message)
    except GitCommandError as exc:
        git(repo, ["reset", "--hard"])
        raise MergeError(f"failed to commit the merge of {branch}\n{exc}") from exc
    return True


def merge_and_cleanup(repo: Path, remote_branch: RemoteBranch, message: str) -> bool:
    try:
        return merge(repo, remote_branch.branch.local_branch_name, message)
    finally:
        cleanup_remote_branch(repo, remote_branch)


def cleanup_remote_branch(repo: Path, remote_branch: RemoteBranch) -> None:
    try:
        delete_remote_and_branch(
            repo,
            remote_branch.remote.local_remote_alias,
            remote_branch.branch.local_branch_name,
        )
    except GitCommandError as exc:
        logging.warning(
            "Failed to clean up remote %s and branch %s: %s",
            remote_branch.remote.local_remote_alias,
            remote_branch.branch.local_branch_name,
            exc,
        )


def pull_request_commit_message(html_url: str) -> str:
    return f"auto-merge pull request {html_url.replace('github.com', 'redirect.github.com')}"
