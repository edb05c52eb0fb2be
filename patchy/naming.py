"""
Branch and remote naming.

Every ref patchy creates must not collide with anything already in the user's
repository, so names are either probed for availability (`allocate`) or carry
a short random token (`disposable`).
"""

from __future__ import annotations

import random
import re
import string
from itertools import count
from pathlib import Path
from typing import Callable, Optional

from .gitutils import list_remotes, ref_exists

TokenFactory = Callable[[], str]

_TOKEN_ALPHABET = string.ascii_letters + string.digits


def random_token(length: int = 4) -> str:
    return "".join(random.choice(_TOKEN_ALPHABET) for _ in range(length))


def normalize_commit_msg(message: str) -> str:
    chars = []
    for ch in message.strip():
        if ch.isalnum():
            chars.append(ch.lower())
        elif ch.isspace():
            chars.append("_")
        else:
            chars.append("-")
    return "".join(chars)


def sanitize_remote_alias(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "-", value.strip()).strip("-") or "remote"


class BranchNameAllocator:
    def __init__(self, repo: Path, token_factory: Optional[TokenFactory] = None) -> None:
        self.repo = repo
        self.token_factory = token_factory or random_token

    def allocate(self, desired: str) -> str:
        """Return `desired` if unused, else the first free `N-desired` with N >= 2."""
        if not ref_exists(self.repo, desired):
            return desired
        for number in count(2):
            candidate = f"{number}-{desired}"
            if not ref_exists(self.repo, candidate):
                return candidate
        raise AssertionError("unreachable")  # pragma: no cover

    def disposable(self, name: str) -> str:
        return f"{name}-{self.token_factory()}"

    def disposable_branch(self, name: str) -> str:
        return self.allocate(self.disposable(name))

    def disposable_remote(self, name: str) -> str:
        existing = set(list_remotes(self.repo))
        base = sanitize_remote_alias(name)
        alias = self.disposable(base)
        while alias in existing:
            alias = self.disposable(base)
        return alias
