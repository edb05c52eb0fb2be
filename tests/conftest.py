from __future__ import annotations

import subprocess
from itertools import count
from pathlib import Path
from typing import Dict, Optional

import pytest

from patchy.config import Settings
from patchy.errors import GitHubError
from patchy.github import PullRequestData, PullRequestHead, RepoData
from patchy.naming import BranchNameAllocator


def run_git(args: list[str], cwd: Path) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        check=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    return result.stdout.strip()


def init_repo(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    run_git(["init", "--initial-branch=main"], path)
    run_git(["config", "user.name", "tester"], path)
    run_git(["config", "user.email", "tester@example.com"], path)
    run_git(["config", "commit.gpgsign", "false"], path)
    return path


def commit_files(repo: Path, files: Dict[str, str], message: str) -> str:
    for name, content in files.items():
        target = repo / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        run_git(["add", name], repo)
    run_git(["commit", "-m", message], repo)
    return run_git(["rev-parse", "HEAD"], repo)


def commit_on_branch(
    repo: Path, branch: str, files: Dict[str, str], message: str, base: str = "main"
) -> str:
    run_git(["checkout", "-B", branch, base], repo)
    sha = commit_files(repo, files, message)
    run_git(["checkout", "main"], repo)
    return sha


def reject_commits_matching(repo: Path, pattern: str) -> None:
    """Install a commit-msg hook that rejects messages containing `pattern`."""
    hook = repo / ".git" / "hooks" / "commit-msg"
    hook.parent.mkdir(parents=True, exist_ok=True)
    hook.write_text(f'#!/bin/sh\nif grep -qF "{pattern}" "$1"; then exit 1; fi\nexit 0\n')
    hook.chmod(0o755)


def branches(repo: Path) -> set[str]:
    output = run_git(["branch", "--format=%(refname:short)"], repo)
    return {line for line in output.splitlines() if line}


def remotes(repo: Path) -> set[str]:
    return {line for line in run_git(["remote"], repo).splitlines() if line}


class Hub:
    """Directory of plain repositories laid out like github.com/<owner>/<repo>.git."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def create_repo(self, owner: str, name: str, files: Dict[str, str]) -> Path:
        repo = init_repo(self.root / owner / f"{name}.git")
        commit_files(repo, files, "initial upstream commit")
        return repo

    def clone_url(self, owner: str, name: str) -> str:
        return str(self.root / owner / f"{name}.git")


class FakeGitHub:
    def __init__(self, hub: Hub) -> None:
        self.hub = hub
        self.pulls: Dict[tuple[str, int], PullRequestData] = {}
        self.pr_requests: list[int] = []

    def add_pr(
        self, repo: str, number: int, head_ref: str, *, head_repo: Optional[str] = None
    ) -> None:
        owner, name = (head_repo or repo).split("/")
        self.pulls[(repo, number)] = PullRequestData(
            head=PullRequestHead(
                repo=RepoData(clone_url=self.hub.clone_url(owner, name)), ref=head_ref
            ),
            title=f"Pull request {number}",
            html_url=f"https://github.com/{repo}/pull/{number}",
        )

    def get_pr(self, repo: str, number: int) -> PullRequestData:
        self.pr_requests.append(number)
        try:
            return self.pulls[(repo, number)]
        except KeyError:
            raise GitHubError(f"Request failed with status: 404 for {repo}#{number}") from None

    def get_repo(self, owner: str, repo: str) -> RepoData:
        path = self.hub.root / owner / f"{repo}.git"
        if not path.exists():
            raise GitHubError(f"Request failed with status: 404 for {owner}/{repo}")
        return RepoData(clone_url=str(path))


def counting_tokens():
    counter = count(1)
    return lambda: f"t{next(counter)}"


@pytest.fixture
def hub(tmp_path: Path) -> Hub:
    return Hub(tmp_path / "hub")


@pytest.fixture
def github(hub: Hub) -> FakeGitHub:
    return FakeGitHub(hub)


@pytest.fixture
def upstream(hub: Hub) -> Path:
    return hub.create_repo("o", "r", {"app.txt": "one\ntwo\nthree\n"})


@pytest.fixture
def local_repo(tmp_path: Path) -> Path:
    repo = init_repo(tmp_path / "fork")
    commit_files(
        repo,
        {
            "README.md": "my fork\n",
            ".patchy/config.toml": 'repo = "o/r"\nremote-branch = "main"\nlocal-branch = "patchy"\n',
        },
        "initial commit",
    )
    return repo


@pytest.fixture
def settings(local_repo: Path, hub: Hub) -> Settings:
    return Settings(root=local_repo, github_url=str(hub.root))


@pytest.fixture
def allocator(local_repo: Path) -> BranchNameAllocator:
    return BranchNameAllocator(local_repo, token_factory=counting_tokens())
