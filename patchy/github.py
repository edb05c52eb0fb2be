from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Dict, Protocol

from .errors import GitHubError
from .gitutils import run_gh_command

API_URL = "https://api.github.com"
USER_AGENT = "patchy"


@dataclass(frozen=True)
class RepoData:
    clone_url: str


@dataclass(frozen=True)
class PullRequestHead:
    repo: RepoData
    ref: str


@dataclass(frozen=True)
class PullRequestData:
    head: PullRequestHead
    title: str
    html_url: str


class GitHubClient(Protocol):
    def get_pr(self, repo: str, number: int) -> PullRequestData: ...

    def get_repo(self, owner: str, repo: str) -> RepoData: ...


def pr_endpoint(repo: str, number: int) -> str:
    return f"repos/{repo}/pulls/{number}"


def repo_endpoint(owner: str, repo: str) -> str:
    return f"repos/{owner}/{repo}"


def parse_pr_payload(payload: Dict[str, Any]) -> PullRequestData:
    try:
        head = payload["head"]
        return PullRequestData(
            head=PullRequestHead(
                repo=RepoData(clone_url=head["repo"]["clone_url"]),
                ref=head["ref"],
            ),
            title=payload["title"],
            html_url=payload["html_url"],
        )
    except (KeyError, TypeError) as exc:
        raise GitHubError(f"Unexpected pull request payload, missing {exc}") from exc


def parse_repo_payload(payload: Dict[str, Any]) -> RepoData:
    try:
        return RepoData(clone_url=payload["clone_url"])
    except (KeyError, TypeError) as exc:
        raise GitHubError(f"Unexpected repository payload, missing {exc}") from exc


def _decode(text: str, endpoint: str) -> Dict[str, Any]:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise GitHubError(f"Failed to parse response from {endpoint}:\n{text}") from exc


class HttpsGitHubClient:
    def __init__(self, api_url: str = API_URL, timeout: float | None = None) -> None:
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _get(self, endpoint: str) -> Dict[str, Any]:
        url = f"{self.api_url}/{endpoint}"
        logging.debug("Making a request to %s", url)
        request = urllib.request.Request(
            url,
            headers={"User-Agent": USER_AGENT, "Accept": "application/vnd.github+json"},
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                text = response.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")
            raise GitHubError(
                f"Request failed with status: {exc.code}\nRequested URL: {url}\nResponse: {body}"
            ) from exc
        except urllib.error.URLError as exc:
            raise GitHubError(f"Error sending request to {url}: {exc.reason}") from exc
        return _decode(text, url)

    def get_pr(self, repo: str, number: int) -> PullRequestData:
        return parse_pr_payload(self._get(pr_endpoint(repo, number)))

    def get_repo(self, owner: str, repo: str) -> RepoData:
        return parse_repo_payload(self._get(repo_endpoint(owner, repo)))


class GhCliGitHubClient:
    def _get(self, endpoint: str) -> Dict[str, Any]:
        return _decode(run_gh_command(["api", endpoint]), endpoint)

    def get_pr(self, repo: str, number: int) -> PullRequestData:
        return parse_pr_payload(self._get(pr_endpoint(repo, number)))

    def get_repo(self, owner: str, repo: str) -> RepoData:
        return parse_repo_payload(self._get(repo_endpoint(owner, repo)))


def make_client(use_gh_cli: bool) -> GitHubClient:
    return GhCliGitHubClient() if use_gh_cli else HttpsGitHubClient()
