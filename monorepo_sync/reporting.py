from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .publish import PublishResult
from .replay import ReplayResult

ACTION_LABELS = [
    ("copied", "files written into the package"),
    ("renamed", "files moved to a new path"),
    ("removed", "files deleted from the package"),
    ("noop", "nothing to do at the target"),
    ("skipped", "source file missing at sync time"),
    ("ignored", "unrecognized change status"),
]


@dataclass
class SyncOutcome:
    pr_number: int
    branch: str
    replay: List[ReplayResult] = field(default_factory=list)
    publish: Optional[PublishResult] = None

    @property
    def ok(self) -> bool:
        return self.publish is None or self.publish.ok

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pr_number": self.pr_number,
            "branch": self.branch,
            "changes": [result.to_dict() for result in self.replay],
            "publish": self.publish.to_dict() if self.publish else None,
        }


def summarize_replay(
    results: Sequence[ReplayResult],
    publish: PublishResult | None = None,
) -> str:
    counts = Counter(result.action for result in results)
    title = "Sync Summary"
    lines = [title, "=" * len(title)]
    width = max(len(label) for label, _ in ACTION_LABELS)
    for label, description in ACTION_LABELS:
        lines.append(f"{label:<{width}} : {counts.get(label, 0)} ({description})")

    if results:
        lines.append("")
        for result in results:
            detail = f"- {result.path}: {result.status} -> {result.action}"
            if result.message:
                detail += f" ({result.message})"
            lines.append(detail)

    if publish is not None:
        lines.append("")
        line = f"Publish: {publish.status} on branch {publish.branch}"
        if publish.pr_url:
            line += f" -> {publish.pr_url}"
        lines.append(line)
    return "\n".join(lines)


def write_sync_report(report_path: Path, outcome: SyncOutcome) -> None:
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(outcome.to_dict(), indent=2))
    logging.info("Wrote sync report to %s", report_path)

