from __future__ import annotations

import logging
import os
import string
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .errors import ConfigError

CONFIG_FILE = "config.toml"
DEFAULT_CONFIG_ROOT = ".patchy"
CONFIG_ROOT_ENV = "PATCHY_CONFIG_ROOT"
DEFAULT_GITHUB_URL = "https://github.com"


@dataclass(frozen=True)
class Settings:
    root: Path
    config_dir_name: str = DEFAULT_CONFIG_ROOT
    github_url: str = DEFAULT_GITHUB_URL
    use_gh_cli: bool = False

    @classmethod
    def from_env(cls, root: Path, *, use_gh_cli: bool = False) -> "Settings":
        return cls(
            root=root,
            config_dir_name=os.environ.get(CONFIG_ROOT_ENV) or DEFAULT_CONFIG_ROOT,
            use_gh_cli=use_gh_cli,
        )

    @property
    def config_path(self) -> Path:
        return self.root / self.config_dir_name

    @property
    def config_file(self) -> Path:
        return self.config_path / CONFIG_FILE

    def repo_clone_url(self, owner: str, repo: str) -> str:
        return f"{self.github_url.rstrip('/')}/{owner}/{repo}.git"


def validate_commit(value: str) -> str:
    commit = value.strip()
    if not commit:
        raise ConfigError("commit cannot be empty")
    if not all(ch in string.hexdigits for ch in commit):
        raise ConfigError(f"invalid commit hash: {commit}")
    return commit


@dataclass(frozen=True)
class Ref:
    item: str
    commit: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "Ref":
        """Parse `<item>` or `<item> @ <commit>`; a leading `#` on the item is dropped."""
        raw = text.strip()
        item, sep, pin = raw.rpartition("@")
        if not sep:
            item, pin = raw, ""
        item = item.strip()
        if item.startswith("#"):
            item = item[1:]
        if not item:
            raise ConfigError(f"empty reference: {text!r}")
        return cls(item=item, commit=validate_commit(pin) if sep else None)

    def __str__(self) -> str:
        return f"{self.item} @ {self.commit}" if self.commit else self.item


@dataclass(frozen=True)
class Remote:
    owner: str
    repo: str
    branch: str
    commit: Optional[str] = None

    @classmethod
    def from_ref(cls, ref: Ref) -> "Remote":
        parts = ref.item.split("/")
        if len(parts) < 3 or not all(parts):
            raise ConfigError(
                f"Invalid branch format: {ref.item}. Expected format: owner/repo/branch"
            )
        return cls(owner=parts[0], repo=parts[1], branch="/".join(parts[2:]), commit=ref.commit)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}/{self.branch}"


@dataclass(frozen=True)
class PullRequest:
    number: int
    commit: Optional[str] = None

    @classmethod
    def from_ref(cls, ref: Ref) -> "PullRequest":
        try:
            number = int(ref.item)
        except ValueError as exc:
            raise ConfigError(f"Invalid pull request number: {ref.item}") from exc
        if number <= 0:
            raise ConfigError(f"Pull request number must be positive: {ref.item}")
        return cls(number=number, commit=ref.commit)


@dataclass
class Config:
    local_branch: str
    repo: str
    remote_branch: Ref
    pull_requests: List[Ref] = field(default_factory=list)
    branches: List[Ref] = field(default_factory=list)
    patches: List[str] = field(default_factory=list)

    @property
    def repo_owner_and_name(self) -> tuple[str, str]:
        owner, sep, name = self.repo.partition("/")
        if not sep or not owner or not name:
            raise ConfigError(f"`repo` must look like owner/name, got: {self.repo}")
        return owner, name


def parse_config(text: str, *, source: str = CONFIG_FILE) -> Config:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Could not parse `{source}` configuration file:\n{exc}") from exc

    for key in ("repo", "remote-branch", "local-branch"):
        if key not in data:
            raise ConfigError(f"`{source}` is missing required key `{key}`")

    try:
        return Config(
            local_branch=str(data["local-branch"]),
            repo=str(data["repo"]).strip(),
            remote_branch=Ref.parse(str(data["remote-branch"])),
            pull_requests=[Ref.parse(str(item)) for item in data.get("pull-requests", [])],
            branches=[Ref.parse(str(item)) for item in data.get("branches", [])],
            patches=list(dict.fromkeys(str(item) for item in data.get("patches", []))),
        )
    except ConfigError as exc:
        raise ConfigError(f"Invalid value in `{source}`: {exc}") from exc


def load_config(settings: Settings) -> Config:
    path = settings.config_file
    try:
        text = path.read_text()
    except FileNotFoundError as exc:
        raise ConfigError(
            f"Could not find configuration file at {settings.config_dir_name}/{CONFIG_FILE}"
        ) from exc
    logging.debug("Using configuration file %s", path)
    return parse_config(text, source=f"{settings.config_dir_name}/{CONFIG_FILE}")
