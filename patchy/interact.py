from __future__ import annotations

from typing import Callable

Confirm = Callable[[str], bool]


def confirm_prompt(message: str) -> bool:
    try:
        answer = input(f"\n  » {message} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}
