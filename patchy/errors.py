from __future__ import annotations

from typing import Sequence


class PatchyError(Exception):
    """Base exception for patchy failures."""


class ConfigError(PatchyError):
    pass


class GitHubError(PatchyError):
    pass


class BackupError(PatchyError):
    pass


class GitCommandError(PatchyError):
    def __init__(self, args: Sequence[str], stdout: str, stderr: str, exit_code: int) -> None:
        self.command = list(args)
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code
        super().__init__(
            f"git {' '.join(self.command)} failed with exit code {exit_code}\n"
            f"Stdout: {stdout.strip()}\nStderr: {stderr.strip()}"
        )


class FetchError(PatchyError):
    pass


class RemoteAddFailed(FetchError):
    pass


class RefNotFound(FetchError):
    pass


class CommitNotFound(FetchError):
    pass


class MergeError(PatchyError):
    pass


class MergeConflict(MergeError):
    pass


class PatchError(PatchyError):
    pass


class PatchApplyFailed(PatchError):
    pass


class RunAborted(PatchyError):
    pass
