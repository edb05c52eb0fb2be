from __future__ import annotations

import logging
from pathlib import Path

import pytest
from conftest import FakeGitHub, branches, commit_files, commit_on_branch, remotes, run_git

from patchy.commands import (
    EXAMPLE_CONFIG,
    branch_fetch,
    gen_patches,
    init_config,
    origin_repo,
    pr_fetch,
)
from patchy.config import Settings, parse_config
from patchy.errors import ConfigError, PatchyError


def test_init_config_writes_example(tmp_path: Path) -> None:
    settings = Settings(root=tmp_path)

    init_config(settings)

    assert settings.config_file.read_text() == EXAMPLE_CONFIG
    config = parse_config(EXAMPLE_CONFIG)
    assert config.local_branch == "patchy"
    assert config.remote_branch.item == "main"
    assert config.repo == ""


def test_init_config_declined_keeps_existing_file(tmp_path: Path) -> None:
    settings = Settings(root=tmp_path)
    settings.config_path.mkdir()
    settings.config_file.write_text("mine")
    prompts = []

    def decline(message: str) -> bool:
        prompts.append(message)
        return False

    with pytest.raises(PatchyError, match="Did not overwrite"):
        init_config(settings, confirm=decline)

    assert len(prompts) == 1
    assert settings.config_file.read_text() == "mine"


def test_init_config_overwrite(tmp_path: Path) -> None:
    settings = Settings(root=tmp_path)
    settings.config_path.mkdir()
    settings.config_file.write_text("mine")

    init_config(settings, overwrite=True)

    assert settings.config_file.read_text() == EXAMPLE_CONFIG


def test_gen_patches_writes_one_file_per_commit(settings: Settings, local_repo: Path) -> None:
    first = commit_files(local_repo, {"a.txt": "a\n"}, "Add a")
    second = commit_files(local_repo, {"b.txt": "b\n"}, "Add b")

    gen_patches(settings, [first, second])

    assert (settings.config_path / "add_a.patch").is_file()
    assert (settings.config_path / "add_b.patch").is_file()


def test_gen_patches_custom_name_needs_single_commit(settings: Settings) -> None:
    with pytest.raises(PatchyError, match="single commit"):
        gen_patches(settings, ["abc", "def"], "custom")


@pytest.mark.parametrize(
    "url",
    [
        "https://github.com/o/r.git",
        "https://github.com/o/r",
        "git@github.com:o/r.git",
        "ssh://git@github.com/o/r.git",
    ],
)
def test_origin_repo_parses_github_remotes(settings: Settings, local_repo: Path, url: str) -> None:
    run_git(["remote", "add", "origin", url], local_repo)

    assert origin_repo(settings) == "o/r"


def test_origin_repo_rejects_other_hosts(settings: Settings, local_repo: Path) -> None:
    run_git(["remote", "add", "origin", "https://gitlab.com/o/r.git"], local_repo)

    with pytest.raises(ConfigError, match="invalid remote"):
        origin_repo(settings)


def test_pr_fetch_keeps_branch_and_drops_remote(
    settings: Settings, github: FakeGitHub, upstream: Path, local_repo: Path
) -> None:
    commit_on_branch(upstream, "fix", {"fix.txt": "fix\n"}, "fix")
    github.add_pr("o/r", 3, "fix")

    fetched = pr_fetch(settings, github, ["3"], repo="o/r", checkout=True)

    assert fetched == ["3/fix"]
    assert run_git(["rev-parse", "--abbrev-ref", "HEAD"], local_repo) == "3/fix"
    assert (local_repo / "fix.txt").read_text() == "fix\n"
    assert remotes(local_repo) == set()


def test_pr_fetch_defaults_to_origin_and_skips_failures(
    settings: Settings,
    github: FakeGitHub,
    upstream: Path,
    local_repo: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.ERROR)
    commit_on_branch(upstream, "fix", {"fix.txt": "fix\n"}, "fix")
    github.add_pr("o/r", 3, "fix")
    run_git(["remote", "add", "origin", "git@github.com:o/r.git"], local_repo)

    fetched = pr_fetch(settings, github, ["404", "#3"])

    assert fetched == ["3/fix"]
    assert github.pr_requests == [404, 3]
    assert any("#404" in record.getMessage() for record in caplog.records)
    assert run_git(["rev-parse", "--abbrev-ref", "HEAD"], local_repo) == "main"
    assert remotes(local_repo) == {"origin"}


def test_pr_fetch_branch_name_needs_single_pull_request(
    settings: Settings, github: FakeGitHub
) -> None:
    with pytest.raises(PatchyError, match="single pull request"):
        pr_fetch(settings, github, ["1", "2"], repo="o/r", branch_name="mine")


def test_branch_fetch_resolves_clone_url(
    settings: Settings,
    github: FakeGitHub,
    upstream: Path,
    local_repo: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.ERROR)
    commit_on_branch(upstream, "feature", {"feature.txt": "feature\n"}, "feature")

    fetched = branch_fetch(settings, github, ["x/y/z", "o/r/feature"])

    assert fetched == ["o/r/feature"]
    assert "o/r/feature" in branches(local_repo)
    assert any("x/y/z" in record.getMessage() for record in caplog.records)
    assert remotes(local_repo) == set()
