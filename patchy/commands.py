from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from .config import PullRequest, Ref, Remote, Settings
from .errors import ConfigError, PatchyError
from .fetch import Fetcher
from .github import GitHubClient
from .gitutils import git, git_succeeds
from .interact import Confirm, confirm_prompt
from .naming import BranchNameAllocator
from .patches import generate_patch

EXAMPLE_CONFIG = """\
# Main github repository to fetch from.
# This is going to be our base, into which we merge patches and pull requests.
#
# Examples
#
# repo = "helix-editor/helix"
# repo = "microsoft/vscode"

repo = ""

# The main repository's branch
#
# Examples
#
# remote-branch = "master"
# remote-branch = "main"
#
# The above always fetch the latest commit.
# To use a specific commit, use the following syntax:
#   remote-branch = "<branch> @ <hash-of-commit>"

remote-branch = "main"

# Branch which patchy will use to do all of its work on

local-branch = "patchy"

# List of pull request numbers to merge into the repository and branch above
#
# Examples
#
# pull-requests = [
#   "12254",
#   "10000 @ a556aeef3736a3b6b79bb9507d26224f5c0c3449",
# ]

pull-requests = []

# List of branches from other repositories to merge into the repository
# Format: "owner/repo/branch", optionally pinned with " @ <hash-of-commit>"
#
# branches = [
#   "helix-editor/helix/master",
#   "other-user/fork/feature-branch @ a556aeef3736a3b6b79bb9507d26224f5c0c3449",
# ]

branches = []

# Optional: A list of patches to apply, in order
#
# With patches = [ "my-patch123", "another-patch" ] patchy looks for
# `.patchy/my-patch123.patch` and `.patchy/another-patch.patch`.
# Generate patches from a commit with: `patchy gen-patch <commit-hash>`.

patches = []
"""

_GITHUB_REMOTE = re.compile(
    r"^(?:git@github\.com:|https://github\.com/|ssh://git@github\.com/)"
    r"(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$"
)


def init_config(
    settings: Settings,
    *,
    overwrite: Optional[bool] = None,
    confirm: Confirm = confirm_prompt,
) -> None:
    path = settings.config_file
    if path.exists():
        if overwrite is None:
            overwrite = confirm(f"File {path} already exists. Overwrite it?")
        if not overwrite:
            raise PatchyError(f"Did not overwrite {path}")
    settings.config_path.mkdir(parents=True, exist_ok=True)
    path.write_text(EXAMPLE_CONFIG)
    logging.info("Created config file %s", path)


def gen_patches(settings: Settings, commits: Sequence[str], filename: Optional[str] = None) -> None:
    if filename and len(commits) > 1:
        raise PatchyError("--patch-filename can only be used with a single commit")
    for commit in commits:
        generate_patch(settings.root, settings.config_path, commit, filename)


def origin_repo(settings: Settings) -> str:
    url = git(settings.root, ["remote", "get-url", "origin"])
    match = _GITHUB_REMOTE.match(url.strip())
    if not match:
        raise ConfigError(f"git command returned invalid remote: {url}")
    return f"{match.group('owner')}/{match.group('repo')}"


def pr_fetch(
    settings: Settings,
    github: GitHubClient,
    pull_requests: Sequence[str],
    *,
    repo: Optional[str] = None,
    branch_name: Optional[str] = None,
    checkout: bool = False,
) -> List[str]:
    if branch_name and len(pull_requests) > 1:
        raise PatchyError("--branch-name can only be used with a single pull request")
    repo = repo or origin_repo(settings)
    fetcher = Fetcher(settings, github, BranchNameAllocator(settings.root))
    fetched: List[str] = []
    for text in pull_requests:
        try:
            pull_request = PullRequest.from_ref(Ref.parse(text))
            response, info = fetcher.fetch_pull_request(
                repo, pull_request, custom_branch_name=branch_name
            )
        except PatchyError as exc:
            logging.error("%s", exc)
            continue
        local = info.branch.local_branch_name
        pin = f", at commit {pull_request.commit}" if pull_request.commit else ""
        logging.info(
            "Fetched pull request #%s %s available at branch %s%s",
            pull_request.number,
            response.title,
            local,
            pin,
        )
        _remove_remote(settings, info.remote.local_remote_alias)
        fetched.append(local)
    if checkout and fetched:
        _checkout_first(settings, fetched[0])
    return fetched


def branch_fetch(
    settings: Settings,
    github: GitHubClient,
    branches: Sequence[str],
    *,
    checkout: bool = False,
) -> List[str]:
    fetcher = Fetcher(settings, github, BranchNameAllocator(settings.root))
    fetched: List[str] = []
    for text in branches:
        try:
            remote = Remote.from_ref(Ref.parse(text))
            clone_url = github.get_repo(remote.owner, remote.repo).clone_url
            info = fetcher.fetch_branch(remote, clone_url=clone_url)
        except PatchyError as exc:
            logging.error("Could not fetch branch %s: %s", text, exc)
            continue
        local = info.branch.local_branch_name
        pin = f", at commit {remote.commit}" if remote.commit else ""
        logging.info("Fetched branch %s available at branch %s%s", remote.full_name, local, pin)
        _remove_remote(settings, info.remote.local_remote_alias)
        fetched.append(local)
    if checkout and fetched:
        _checkout_first(settings, fetched[0])
    return fetched


def _remove_remote(settings: Settings, alias: str) -> None:
    if not git_succeeds(settings.root, ["remote", "remove", alias]):
        logging.warning("Failed to remove remote %s", alias)


def _checkout_first(settings: Settings, branch: str) -> None:
    if git_succeeds(settings.root, ["checkout", branch]):
        logging.info("Automatically checked out the first branch: %s", branch)
    else:
        logging.error("Could not check out branch %s", branch)
