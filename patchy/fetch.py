from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .config import PullRequest, Remote, Settings
from .errors import (
    CommitNotFound,
    FetchError,
    GitCommandError,
    GitHubError,
    RefNotFound,
    RemoteAddFailed,
)
from .github import GitHubClient, PullRequestData
from .gitutils import git, git_succeeds, ref_exists
from .naming import BranchNameAllocator


@dataclass(frozen=True)
class RemoteInfo:
    repository_url: str
    local_remote_alias: str


@dataclass(frozen=True)
class BranchInfo:
    upstream_branch_name: str
    local_branch_name: str


@dataclass(frozen=True)
class RemoteBranch:
    remote: RemoteInfo
    branch: BranchInfo


class Fetcher:
    """Creates the ephemeral remote + branch pair for one PR or branch.

    On success the caller owns both and must delete them; on failure nothing
    created by the fetch is left in the repository.
    """

    def __init__(
        self,
        settings: Settings,
        github: GitHubClient,
        allocator: BranchNameAllocator,
    ) -> None:
        self.settings = settings
        self.github = github
        self.allocator = allocator

    @property
    def repo(self) -> Path:
        return self.settings.root

    def fetch_pull_request(
        self,
        repo: str,
        pull_request: PullRequest,
        *,
        custom_branch_name: Optional[str] = None,
    ) -> Tuple[PullRequestData, RemoteBranch]:
        number = pull_request.number
        try:
            response = self.github.get_pr(repo, number)
        except GitHubError as exc:
            raise RefNotFound(f"failed to fetch pull request #{number}\n{exc}") from exc

        local_branch = self.allocator.allocate(
            custom_branch_name or f"{number}/{response.head.ref}"
        )
        remote_branch = RemoteBranch(
            remote=RemoteInfo(
                repository_url=response.head.repo.clone_url,
                local_remote_alias=self.allocator.disposable_remote(f"pr-{number}"),
            ),
            branch=BranchInfo(
                upstream_branch_name=response.head.ref,
                local_branch_name=local_branch,
            ),
        )
        try:
            self.add_remote_branch(remote_branch, pull_request.commit)
        except FetchError as exc:
            raise type(exc)(
                f"failed to add remote branch for pull request #{number}, skipping.\n{exc}"
            ) from exc
        return response, remote_branch

    def fetch_branch(
        self,
        remote: Remote,
        *,
        clone_url: Optional[str] = None,
        custom_branch_name: Optional[str] = None,
    ) -> RemoteBranch:
        url = clone_url or self.settings.repo_clone_url(remote.owner, remote.repo)
        remote_branch = RemoteBranch(
            remote=RemoteInfo(
                repository_url=url,
                local_remote_alias=self.allocator.disposable_remote(
                    f"{remote.owner}-{remote.repo}"
                ),
            ),
            branch=BranchInfo(
                upstream_branch_name=remote.branch,
                local_branch_name=self.allocator.allocate(
                    custom_branch_name or remote.full_name
                ),
            ),
        )
        try:
            self.add_remote_branch(remote_branch, remote.commit)
        except FetchError as exc:
            raise type(exc)(
                f"Could not add remote branch {remote.owner}/{remote.repo}, skipping.\n{exc}"
            ) from exc
        return remote_branch

    def add_remote_branch(self, remote_branch: RemoteBranch, commit: Optional[str]) -> None:
        alias = remote_branch.remote.local_remote_alias
        url = remote_branch.remote.repository_url
        upstream = remote_branch.branch.upstream_branch_name
        local = remote_branch.branch.local_branch_name

        try:
            git(self.repo, ["remote", "add", alias, url])
        except GitCommandError as exc:
            self._discard(alias, local)
            raise RemoteAddFailed(f"failed to add remote {alias} for {url}:\n{exc}") from exc

        try:
            git(self.repo, ["fetch", url, f"{upstream}:refs/heads/{local}"])
        except GitCommandError as exc:
            self._discard(alias, local)
            raise RefNotFound(
                f"Failed to find branch {upstream} of repository {url}. "
                f"Are you sure it exists?\n{exc}"
            ) from exc

        if commit:
            try:
                git(self.repo, ["branch", "--force", local, commit])
            except GitCommandError as exc:
                self._discard(alias, local)
                raise CommitNotFound(
                    f"Failed to find commit {commit} of branch {local}. "
                    f"Are you sure the commit exists?\n{exc}"
                ) from exc

    def _discard(self, alias: str, branch: str) -> None:
        if ref_exists(self.repo, f"refs/heads/{branch}"):
            if not git_succeeds(self.repo, ["branch", "--delete", "--force", branch]):
                logging.warning("Failed to delete branch %s", branch)
        if not git_succeeds(self.repo, ["remote", "remove", alias]):
            logging.debug("Remote %s was not present, nothing to remove", alias)
