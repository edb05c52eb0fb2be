"""
The `patchy run` pipeline.

State machine: init -> fetching -> merging -> finalizing -> overwriting -> done,
with aborted reachable until the working branch is deleted. Items are fetched
and merged one at a time: git allows a single writer per worktree and index.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .backup import FileBackup, backup_files, restore_files
from .config import Config, PullRequest, Ref, Remote, Settings
from .errors import BackupError, GitCommandError, PatchError, PatchyError, RunAborted
from .fetch import Fetcher, RemoteBranch
from .github import GitHubClient
from .gitutils import current_branch, git, git_succeeds, has_staged_changes
from .interact import Confirm, confirm_prompt
from .merge import cleanup_remote_branch, merge_and_cleanup, pull_request_commit_message
from .naming import BranchNameAllocator
from .patches import apply_patch
from .reporting import ItemFailure, RunReport

INIT = "init"
FETCHING = "fetching"
MERGING = "merging"
FINALIZING = "finalizing"
OVERWRITING = "overwriting"
DONE = "done"
ABORTED = "aborted"

RESTORE_COMMIT_MESSAGE = "Restore configuration files"


class RunOrchestrator:
    def __init__(
        self,
        settings: Settings,
        github: GitHubClient,
        *,
        allocator: Optional[BranchNameAllocator] = None,
        confirm: Optional[Confirm] = None,
    ) -> None:
        self.settings = settings
        self.allocator = allocator or BranchNameAllocator(settings.root)
        self.fetcher = Fetcher(settings, github, self.allocator)
        self.confirm = confirm or confirm_prompt
        self.report = RunReport()
        self._backups: List[FileBackup] = []
        self._working: Optional[RemoteBranch] = None
        self._previous_branch: Optional[str] = None

    @property
    def repo(self) -> Path:
        return self.settings.root

    def run(self, config: Config, *, yes: bool = False) -> RunReport:
        self.report = RunReport(state=INIT)
        try:
            self._init(config)
            self._fetch_working_branch(config)
            self._merge_items(config)
            self._finalize(config)
            self._overwrite(config, yes=yes)
        except PatchyError:
            self.report.state = ABORTED
            raise
        self.report.state = DONE
        return self.report

    def _init(self, config: Config) -> None:
        if not config.repo:
            raise RunAborted(
                "You haven't specified a `repo` in your config, which can be for example:\n"
                "  - `helix-editor/helix`\n"
                "  - `microsoft/vscode`"
            )
        try:
            self._backups = backup_files(self.settings.config_path)
        except BackupError as exc:
            raise RunAborted(f"Could not back up configuration files:\n{exc}") from exc

    def _fetch_working_branch(self, config: Config) -> None:
        self.report.state = FETCHING
        owner, name = config.repo_owner_and_name
        base = Remote(
            owner=owner,
            repo=name,
            branch=config.remote_branch.item,
            commit=config.remote_branch.commit,
        )
        try:
            working = self.fetcher.fetch_branch(
                base, custom_branch_name=self.allocator.disposable(base.branch)
            )
        except PatchyError as exc:
            raise RunAborted(f"Could not fetch base branch {config.remote_branch}:\n{exc}") from exc

        try:
            previous = current_branch(self.repo)
            if previous == "HEAD":
                previous = git(self.repo, ["rev-parse", "HEAD"])
        except GitCommandError as exc:
            cleanup_remote_branch(self.repo, working)
            raise RunAborted(
                "Couldn't get the current branch. This usually happens when the current "
                f"branch does not have any commits.\n{exc}"
            ) from exc

        try:
            git(self.repo, ["checkout", working.branch.local_branch_name])
        except GitCommandError as exc:
            cleanup_remote_branch(self.repo, working)
            raise RunAborted(
                f"Failed to checkout branch: {working.branch.local_branch_name}, which belongs "
                f"to remote {working.remote.local_remote_alias}\n{exc}"
            ) from exc

        self._working = working
        self._previous_branch = previous
        logging.info("Working on %s from %s", working.branch.local_branch_name, config.repo)

    def _merge_items(self, config: Config) -> None:
        self.report.state = MERGING
        if not config.pull_requests and not config.branches:
            logging.warning(
                "You haven't specified any pull requests or branches to fetch in your config"
            )
        for ref in config.pull_requests:
            self._merge_pull_request(config.repo, ref)
        for ref in config.branches:
            self._merge_branch(ref)

    def _merge_pull_request(self, repo: str, ref: Ref) -> None:
        label = f"#{ref.item}"
        try:
            pull_request = PullRequest.from_ref(ref)
            response, remote_branch = self.fetcher.fetch_pull_request(repo, pull_request)
        except PatchyError as exc:
            self._record_failure(label, f"failed to fetch pull request {label}:\n{exc}")
            return

        try:
            merge_and_cleanup(
                self.repo, remote_branch, pull_request_commit_message(response.html_url)
            )
        except PatchyError as exc:
            self._record_failure(
                label,
                f"Could not merge branch {remote_branch.branch.local_branch_name} into the "
                f"current branch for pull request {label} {response.title} since the merge "
                f"is non-trivial.\nYou will need to merge it yourself:\n"
                f"  git merge --squash {remote_branch.branch.local_branch_name}\n"
                f"Skipping this PR. Error message from git:\n{exc}",
            )
            return

        self.report.merged.append(label)
        logging.info("Merged pull request %s %s", label, response.title)

    def _merge_branch(self, ref: Ref) -> None:
        label = ref.item
        try:
            remote = Remote.from_ref(ref)
            remote_branch = self.fetcher.fetch_branch(remote)
        except PatchyError as exc:
            self._record_failure(label, f"Could not fetch branch {label}: {exc}")
            return

        try:
            merge_and_cleanup(self.repo, remote_branch, f"Merge {remote.full_name}")
        except PatchyError as exc:
            self._record_failure(label, f"Could not merge branch {label}: {exc}")
            return

        self.report.merged.append(label)
        if remote.commit:
            logging.info("Merged branch %s at commit %s", label, remote.commit)
        else:
            logging.info("Merged branch %s", label)

    def _record_failure(self, item: str, reason: str) -> None:
        logging.error("%s", reason)
        self.report.failures.append(ItemFailure(item=item, reason=reason))

    def _finalize(self, config: Config) -> None:
        self.report.state = FINALIZING
        config_path = self.settings.config_path
        try:
            config_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self._rollback()
            raise RunAborted(f"Could not create directory {config_path}\n{exc}") from exc

        try:
            restore_files(self._backups, config_path)
        except BackupError as exc:
            self._rollback()
            raise RunAborted(f"Could not restore configuration files:\n{exc}") from exc

        for patch in config.patches:
            try:
                applied = apply_patch(self.repo, config_path, patch)
            except PatchError as exc:
                self._rollback()
                raise RunAborted(f"{exc}\nNo further patches were applied.") from exc
            if applied:
                self.report.applied_patches.append(patch)
            else:
                self.report.missing_patches.append(patch)

        try:
            git(self.repo, ["add", self.settings.config_dir_name])
            if has_staged_changes(self.repo):
                git(self.repo, ["commit", "--message", f"patchy: {RESTORE_COMMIT_MESSAGE}"])
        except GitCommandError as exc:
            self._rollback()
            raise RunAborted(f"Could not commit configuration files:\n{exc}") from exc

    def _overwrite(self, config: Config, *, yes: bool) -> None:
        self.report.state = OVERWRITING
        working = self._working
        if working is None:
            raise RunAborted("No working branch to overwrite from")
        temporary_branch = self.allocator.disposable_branch("temp-branch")
        try:
            git(self.repo, ["switch", "--create", temporary_branch])
        except GitCommandError as exc:
            self._rollback()
            raise RunAborted(f"Could not create branch {temporary_branch}:\n{exc}") from exc
        cleanup_remote_branch(self.repo, working)
        self._working = None
        self.report.temp_branch = temporary_branch

        local_branch = config.local_branch
        if yes or self.confirm(f"Overwrite branch {local_branch}? This is irreversible."):
            git(self.repo, ["branch", "--move", "--force", temporary_branch, local_branch])
            self.report.overwritten = True
            if yes:
                logging.info(
                    "Automatically overwrote branch %s since you supplied the --yes flag",
                    local_branch,
                )
            logging.info("Success!")
            return

        logging.info(
            "You can still manually overwrite %s with:\n  git branch --move --force %s %s\n",
            local_branch,
            temporary_branch,
            local_branch,
        )

    def _rollback(self) -> None:
        """Return to the user's branch and drop the working branch."""
        if self._previous_branch and not git_succeeds(
            self.repo, ["checkout", "--force", self._previous_branch]
        ):
            logging.error("Failed to check out original branch %s", self._previous_branch)
        try:
            self.settings.config_path.mkdir(parents=True, exist_ok=True)
            restore_files(self._backups, self.settings.config_path)
        except (OSError, BackupError) as exc:
            logging.error("Failed to restore configuration files during rollback: %s", exc)
        if self._working is not None:
            cleanup_remote_branch(self.repo, self._working)
            self._working = None
