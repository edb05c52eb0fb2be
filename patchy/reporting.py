from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ItemFailure:
    item: str
    reason: str


@dataclass
class RunReport:
    state: str = "init"
    merged: List[str] = field(default_factory=list)
    failures: List[ItemFailure] = field(default_factory=list)
    applied_patches: List[str] = field(default_factory=list)
    missing_patches: List[str] = field(default_factory=list)
    temp_branch: Optional[str] = None
    overwritten: bool = False

    @property
    def failed_items(self) -> List[str]:
        return [failure.item for failure in self.failures]


def summarize_run(report: RunReport, local_branch: str | None = None) -> str:
    lines = []
    lines.append("Patchy Run Summary")
    lines.append("==================")
    lines.append(f"State: {report.state}")
    for item in report.merged:
        lines.append(f"- merged {item}")
    for failure in report.failures:
        reason = failure.reason.splitlines()[0] if failure.reason else ""
        lines.append(f"- failed {failure.item} ({reason})")
    for patch in report.applied_patches:
        lines.append(f"- applied patch {patch}")
    for patch in report.missing_patches:
        lines.append(f"- missing patch {patch}")
    if report.temp_branch:
        target = local_branch or "the local branch"
        if report.overwritten:
            lines.append(f"Overwrote {target} with {report.temp_branch}")
        else:
            lines.append(f"Result left on {report.temp_branch}; {target} untouched")
    return "\n".join(lines)
